"""Authoritative store for the shared score board."""

from dataclasses import replace
from typing import Optional

from scoreboard.models.game_state import GameState, default_team_name, utc_timestamp


class StateStore:
    """
    Owns the single mutable game state of the process.

    All reads and writes go through the methods below; callers only ever see
    immutable ``GameState`` snapshots. Operations are synchronous so each
    read-modify-write runs without yielding to the event loop.
    """

    def __init__(self, initial_state: Optional[GameState] = None):
        """
        Initialize the store.

        Args:
            initial_state: State loaded at boot; defaults are used if omitted
        """
        self._state = initial_state or GameState(last_updated=utc_timestamp())

    def snapshot(self) -> GameState:
        """Get an immutable copy of the current state."""
        return replace(self._state)

    def team_score(self, team: int) -> int:
        return self._state.score(team)

    def team_name(self, team: int) -> str:
        return self._state.name(team)

    def apply_score_delta(self, team: int, delta: int) -> int:
        """
        Add ``delta`` to a team's score, clamping at zero.

        Args:
            team: Team number, 1 or 2 (validated by the caller)
            delta: Points to add, may be negative

        Returns:
            The team's new score
        """
        new_score = max(0, self._state.score(team) + delta)
        self._state = replace(self._state, **{f"team{team}_score": new_score},
                              last_updated=utc_timestamp())
        return new_score

    def rename_team(self, team: int, name: Optional[str]) -> str:
        """Rename a team; an empty or missing name restores ``Team {team}``."""
        new_name = name or default_team_name(team)
        self._state = replace(self._state, **{f"team{team}_name": new_name},
                              last_updated=utc_timestamp())
        return new_name

    def reset(self) -> None:
        """Zero both scores, keeping the team names."""
        self._state = replace(self._state, team1_score=0, team2_score=0,
                              last_updated=utc_timestamp())
