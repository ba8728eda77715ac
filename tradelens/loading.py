"""Async data loading with stale-result protection.

Each load bumps a generation counter; when a fetch completes, its result is
applied only if no newer load has started for the same target in the
meantime. Fetches have no timeout.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from tradelens.errors import DataLoadError

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    async def fetch(self, key: str) -> Any:
        ...


class FileDataSource:
    """Reads ``.json`` and ``.csv`` payloads from a directory.

    CSV files load as DataFrames; JSON files as parsed documents.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        path = Path(key)
        return path if path.is_absolute() else self.root / path

    def read(self, key: str) -> Any:
        """Blocking read of one payload."""
        path = self.path_for(key)
        if not path.exists():
            raise DataLoadError(key, f"no such file: {path}")
        try:
            if path.suffix.lower() == ".csv":
                return pd.read_csv(path)
            if path.suffix.lower() == ".json":
                return json.loads(path.read_text())
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise DataLoadError(key, str(e)) from e
        raise DataLoadError(key, f"unsupported file type {path.suffix!r}")

    async def fetch(self, key: str) -> Any:
        # file and parse work stays off the event loop
        return await asyncio.to_thread(self.read, key)


@dataclass
class LoadOutcome:
    key: str
    generation: int
    payload: Any = None
    error: DataLoadError | None = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.stale


class LoadCoordinator:
    """Runs fetches for one consumer and drops superseded results."""

    def __init__(self, source: DataSource) -> None:
        self.source = source
        self.generation = 0

    async def load(
        self,
        key: str,
        on_result: Callable[[Any], None] | None = None,
        on_error: Callable[[DataLoadError], None] | None = None,
    ) -> LoadOutcome:
        self.generation += 1
        generation = self.generation
        try:
            payload = await self.source.fetch(key)
        except DataLoadError as e:
            outcome = LoadOutcome(key, generation, error=e)
        except Exception as e:
            logger.debug("Fetch of %r raised %s", key, type(e).__name__, exc_info=True)
            outcome = LoadOutcome(key, generation, error=DataLoadError(key, str(e) or type(e).__name__))
        else:
            outcome = LoadOutcome(key, generation, payload=payload)

        if generation != self.generation:
            outcome.stale = True
            logger.debug("Discarding stale load of %r (generation %d < %d)", key, generation, self.generation)
            return outcome

        if outcome.error is not None:
            logger.warning("Load failed: %s", outcome.error)
            if on_error is not None:
                on_error(outcome.error)
        elif on_result is not None:
            on_result(outcome.payload)
        return outcome
