"""Interpretation of inbound client messages."""

import json
import logging
from typing import Any

from scoreboard.core.audit import AuditEntry, AuditTrail
from scoreboard.core.broadcaster import Broadcaster
from scoreboard.core.exceptions import ProtocolError, UnknownMessageError
from scoreboard.core.state_store import StateStore
from scoreboard.models.client import ConnectionRecord
from scoreboard.models.event import OutboundEvent
from scoreboard.models.message import (
    MESSAGE_CLASSES, VALID_TEAMS, ClientMessage, MessageType,
    UpdateScoreMessage, UpdateTeamNameMessage,
)

logger = logging.getLogger(__name__)

INVALID_FORMAT = "Invalid message format"


def parse_message(raw: str) -> ClientMessage:
    """
    Parse one inbound text frame.

    Raises:
        ProtocolError: If the frame is not a JSON object with a string ``type``
        UnknownMessageError: If ``type`` is not a known message type
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError(INVALID_FORMAT) from e

    if not isinstance(data, dict) or not isinstance(data.get('type'), str):
        raise ProtocolError(INVALID_FORMAT)

    try:
        message_type = MessageType(data['type'])
    except ValueError:
        raise UnknownMessageError(data['type']) from None

    return MESSAGE_CLASSES[message_type].from_dict(data)


class ProtocolHandler:
    """Validates messages, mutates the store and triggers broadcasts."""

    def __init__(self, store: StateStore, broadcaster: Broadcaster, audit: AuditTrail = None):
        self.store = store
        self.broadcaster = broadcaster
        self.audit = audit or AuditTrail()
        self._handlers = {
            MessageType.UPDATE_SCORE: self._handle_update_score,
            MessageType.UPDATE_TEAM_NAME: self._handle_update_team_name,
            MessageType.RESET: self._handle_reset,
            MessageType.GET_STATE: self._handle_get_state,
            MessageType.PING: self._handle_ping,
        }

    async def handle_raw(self, connection: ConnectionRecord, raw: Any) -> None:
        """
        Process one inbound frame from a client.

        Malformed or unknown messages are answered with an ``error`` event
        to the sender only.
        """
        try:
            message = parse_message(raw)
        except UnknownMessageError as e:
            logger.warning(f"Unknown message type from {connection.origin}: {e.message_type!r}")
            await self.broadcaster.send_to(connection, OutboundEvent.error(str(e)))
            return
        except ProtocolError as e:
            logger.warning(f"Malformed message from {connection.origin}: {raw!r}")
            await self.broadcaster.send_to(connection, OutboundEvent.error(str(e)))
            return

        logger.debug(f"Received {message!r} from {connection.origin}")
        await self.handle(connection, message)

    async def handle(self, connection: ConnectionRecord, message: ClientMessage) -> None:
        await self._handlers[message.type](connection, message)

    async def _handle_update_score(self, connection: ConnectionRecord, message: UpdateScoreMessage) -> None:
        if message.team not in VALID_TEAMS:
            logger.debug(f"Ignoring updateScore for invalid team {message.team!r} from {connection.origin}")
            return

        old_score = self.store.team_score(message.team)
        new_score = self.store.apply_score_delta(message.team, message.points)
        logger.info(f"{connection.origin} team {message.team} score: {old_score} -> {new_score}")

        snapshot = self.store.snapshot()
        await self.broadcaster.broadcast_all(OutboundEvent.state_update(snapshot))

        if message.trigger_effects:
            sent = await self.broadcaster.broadcast_except(
                OutboundEvent.trigger_effects(message.team, message.points, message.play_sound),
                connection
            )
            logger.info(f"Effects for team {message.team} ({message.points:+d}) sent to {sent} client(s)")

        self._audit(connection, "updateScore",
                    f"team {message.team} score {message.points:+d} ({old_score} -> {new_score})", snapshot)

    async def _handle_update_team_name(self, connection: ConnectionRecord, message: UpdateTeamNameMessage) -> None:
        if message.team not in VALID_TEAMS:
            logger.debug(f"Ignoring updateTeamName for invalid team {message.team!r} from {connection.origin}")
            return

        old_name = self.store.team_name(message.team)
        new_name = self.store.rename_team(message.team, message.name)
        logger.info(f"{connection.origin} team {message.team} name: {old_name!r} -> {new_name!r}")

        snapshot = self.store.snapshot()
        await self.broadcaster.broadcast_all(OutboundEvent.state_update(snapshot))
        self._audit(connection, "updateTeamName",
                    f"team {message.team} renamed {old_name!r} -> {new_name!r}", snapshot)

    async def _handle_reset(self, connection: ConnectionRecord, message: ClientMessage) -> None:
        before = self.store.snapshot()
        self.store.reset()
        logger.info(f"{connection.origin} reset scores: "
                    f"team 1 {before.team1_score} -> 0, team 2 {before.team2_score} -> 0")

        snapshot = self.store.snapshot()
        await self.broadcaster.broadcast_all(OutboundEvent.state_update(snapshot))
        self._audit(connection, "reset",
                    f"scores reset ({before.team1_score}:{before.team2_score} -> 0:0)", snapshot)

    async def _handle_get_state(self, connection: ConnectionRecord, message: ClientMessage) -> None:
        await self.broadcaster.send_to(connection, OutboundEvent.state(self.store.snapshot()))

    async def _handle_ping(self, connection: ConnectionRecord, message: ClientMessage) -> None:
        await self.broadcaster.send_to(connection, OutboundEvent.pong())

    def _audit(self, connection: ConnectionRecord, action: str, details: str, snapshot) -> None:
        self.audit.record(AuditEntry(origin=connection.origin, action=action, details=details, state=snapshot))
