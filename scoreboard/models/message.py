"""Inbound client message models."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class MessageType(Enum):
    """Types of messages a client can send."""
    UPDATE_SCORE = "updateScore"
    UPDATE_TEAM_NAME = "updateTeamName"
    RESET = "reset"
    GET_STATE = "getState"
    PING = "ping"


VALID_TEAMS = (1, 2)


def coerce_team(value: Any) -> Optional[int]:
    """Return the team number if ``value`` is an integral JSON number, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def coerce_points(value: Any) -> int:
    """Missing, null or non-numeric points count as zero; fractions truncate."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


@dataclass(frozen=True)
class ClientMessage:
    """Base class for all inbound messages."""

    type: MessageType

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClientMessage':
        return cls(type=MessageType(data['type']))


@dataclass(frozen=True)
class UpdateScoreMessage(ClientMessage):
    """Add ``points`` (possibly negative) to a team's score."""

    team: Optional[int] = None
    points: int = 0
    trigger_effects: bool = False
    play_sound: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UpdateScoreMessage':
        return cls(
            type=MessageType.UPDATE_SCORE,
            team=coerce_team(data.get('team')),
            points=coerce_points(data.get('points')),
            trigger_effects=bool(data.get('triggerEffects')),
            play_sound=bool(data.get('playSound'))
        )


@dataclass(frozen=True)
class UpdateTeamNameMessage(ClientMessage):
    """Rename a team; an empty name restores the generated default."""

    team: Optional[int] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UpdateTeamNameMessage':
        name = data.get('name')
        return cls(
            type=MessageType.UPDATE_TEAM_NAME,
            team=coerce_team(data.get('team')),
            name=name if isinstance(name, str) else None
        )


MESSAGE_CLASSES = {
    MessageType.UPDATE_SCORE: UpdateScoreMessage,
    MessageType.UPDATE_TEAM_NAME: UpdateTeamNameMessage,
    MessageType.RESET: ClientMessage,
    MessageType.GET_STATE: ClientMessage,
    MessageType.PING: ClientMessage,
}
