"""Audit trail of mutations, delivered to pluggable hooks."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from scoreboard.models.game_state import GameState, utc_timestamp

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("scoreboard.audit")


@dataclass(frozen=True)
class AuditEntry:
    """One successful mutation."""

    origin: str
    action: str
    details: str
    state: GameState
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'ip': self.origin,
            'action': self.action,
            'details': self.details,
            'gameState': self.state.to_dict()
        }


AuditHook = Callable[[AuditEntry], None]


def log_audit_entry(entry: AuditEntry) -> None:
    audit_logger.info(json.dumps(entry.to_dict(), ensure_ascii=False))


class AuditTrail:
    """Runs registered hooks after each mutation; hook failures are only logged."""

    def __init__(self, hooks: List[AuditHook] = None):
        self.hooks: List[AuditHook] = list(hooks) if hooks is not None else [log_audit_entry]

    def subscribe(self, hook: AuditHook) -> None:
        self.hooks.append(hook)

    def record(self, entry: AuditEntry) -> None:
        for hook in self.hooks:
            try:
                hook(entry)
            except Exception as e:
                logger.error(f"Audit hook {getattr(hook, '__name__', hook)!r} failed: {str(e)}")
