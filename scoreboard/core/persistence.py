"""JSON file persistence of the game state."""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from scoreboard.core.exceptions import PersistenceError
from scoreboard.models.game_state import GameState

logger = logging.getLogger(__name__)


class JsonFilePersistence:
    """Loads and saves a GameState as a JSON document."""

    def __init__(self, path, defaults: GameState):
        """
        Args:
            path: Location of the state file
            defaults: State used for fields missing from the file
        """
        self.path = Path(path)
        self.defaults = defaults

    def load(self) -> GameState:
        """
        Load the persisted state merged over the defaults.

        A missing file is not an error and yields the defaults.

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed
        """
        if not self.path.exists():
            logger.info(f"No saved state at {self.path}, using defaults")
            return self.defaults
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to load state from {self.path}: {str(e)}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"State file {self.path} does not contain a JSON object")
        try:
            state = GameState.from_dict(data, self.defaults)
        except (TypeError, ValueError, OverflowError) as e:
            raise PersistenceError(f"Invalid state in {self.path}: {str(e)}") from e
        logger.info(f"Loaded game state from {self.path}")
        return state

    def save(self, state: GameState) -> None:
        """
        Write the state, replacing the file atomically.

        Raises:
            PersistenceError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(state.to_dict(), fh, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to save state to {self.path}: {str(e)}") from e
        logger.info(f"Game state saved to {self.path}")


class Autosaver:
    """Periodically persists the current snapshot in the background."""

    def __init__(self, persistence: JsonFilePersistence, snapshot: Callable[[], GameState], interval: float = 300.0):
        self.persistence = persistence
        self.snapshot = snapshot
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def save_now(self) -> bool:
        """Persist the current snapshot; failures are logged, never raised."""
        try:
            self.persistence.save(self.snapshot())
            return True
        except PersistenceError as e:
            logger.error(str(e))
            return False

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.save_now()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="autosave")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
