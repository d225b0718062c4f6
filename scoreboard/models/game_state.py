"""Game state model shared by every connected client."""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Keys written by older deployments of the server
LEGACY_SCORE_KEYS = {"team1": "team1Score", "team2": "team2Score"}


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_team_name(team: int) -> str:
    return f"Team {team}"


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the score board."""

    team1_score: int = 0
    team2_score: int = 0
    team1_name: str = "Red Team"
    team2_name: str = "Blue Team"
    last_updated: str = ""

    def score(self, team: int) -> int:
        return self.team1_score if team == 1 else self.team2_score

    def name(self, team: int) -> str:
        return self.team1_name if team == 1 else self.team2_name

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to its wire/persisted representation."""
        return {
            'team1Score': self.team1_score,
            'team2Score': self.team2_score,
            'team1Name': self.team1_name,
            'team2Name': self.team2_name,
            'lastUpdated': self.last_updated
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional['GameState'] = None) -> 'GameState':
        """
        Create a GameState by merging ``data`` over ``defaults``.

        Unknown keys are ignored and missing or wrongly typed keys keep their
        default value, as do non-finite scores. Negative scores are clamped
        to zero.
        """
        base = defaults or cls(last_updated=utc_timestamp())
        data = dict(data)
        for legacy, key in LEGACY_SCORE_KEYS.items():
            if key not in data and legacy in data:
                data[key] = data[legacy]
        changes: Dict[str, Any] = {}

        for key, attr in (('team1Score', 'team1_score'), ('team2Score', 'team2_score')):
            value = data.get(key)
            if isinstance(value, bool):
                continue
            if isinstance(value, int) or (isinstance(value, float) and math.isfinite(value)):
                changes[attr] = max(0, int(value))

        for key, attr in (('team1Name', 'team1_name'), ('team2Name', 'team2_name')):
            value = data.get(key)
            if isinstance(value, str) and value:
                changes[attr] = value

        if isinstance(data.get('lastUpdated'), str):
            changes['last_updated'] = data['lastUpdated']

        return replace(base, **changes)

    def __repr__(self) -> str:
        return (f"GameState({self.team1_name!r}={self.team1_score!r}, "
                f"{self.team2_name!r}={self.team2_score!r}, last_updated={self.last_updated!r})")
