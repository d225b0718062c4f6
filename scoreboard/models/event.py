"""Outbound event models sent from the server to clients."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from scoreboard.models.game_state import GameState, utc_timestamp


class EventType(Enum):
    """Types of events the server emits."""
    WELCOME = "welcome"
    INIT = "init"
    STATE = "state"
    STATE_UPDATE = "stateUpdate"
    CLIENT_COUNT = "clientCount"
    TRIGGER_EFFECTS = "triggerEffects"
    PONG = "pong"
    ERROR = "error"


@dataclass(frozen=True)
class OutboundEvent:
    """A server event; ``payload`` holds the type-specific fields."""

    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        result = {'type': self.type.value}
        result.update(self.payload)
        result['timestamp'] = self.timestamp
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    # Constructors for each event type

    @classmethod
    def welcome(cls, client_count: int) -> 'OutboundEvent':
        return cls(EventType.WELCOME, {
            'message': 'Connected to the live scoreboard',
            'clientCount': client_count
        })

    @classmethod
    def init(cls, state: GameState) -> 'OutboundEvent':
        return cls(EventType.INIT, {'data': state.to_dict()})

    @classmethod
    def state(cls, state: GameState) -> 'OutboundEvent':
        return cls(EventType.STATE, {'data': state.to_dict()})

    @classmethod
    def state_update(cls, state: GameState) -> 'OutboundEvent':
        return cls(EventType.STATE_UPDATE, {'data': state.to_dict()})

    @classmethod
    def client_count(cls, count: int) -> 'OutboundEvent':
        return cls(EventType.CLIENT_COUNT, {'count': count})

    @classmethod
    def trigger_effects(cls, team: int, points: int, play_sound: bool) -> 'OutboundEvent':
        return cls(EventType.TRIGGER_EFFECTS, {
            'team': team,
            'points': points,
            'playSound': play_sound
        })

    @classmethod
    def pong(cls) -> 'OutboundEvent':
        return cls(EventType.PONG)

    @classmethod
    def error(cls, message: str) -> 'OutboundEvent':
        return cls(EventType.ERROR, {'message': message})
