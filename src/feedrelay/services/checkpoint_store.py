from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from feedrelay.errors import CheckpointLoadError, CheckpointSaveError
from feedrelay.schemas.state import RunState

logger = logging.getLogger(__name__)


def is_valid_document(document: Any) -> bool:
    return (
        isinstance(document, dict)
        and isinstance(document.get("lastCheckedAt"), str)
        and isinstance(document.get("feeds"), dict)
    )


def state_from_document(document: Any) -> RunState:
    """Validate a decoded checkpoint document, falling back to the empty default."""
    if not is_valid_document(document):
        logger.warning("Invalid checkpoint structure found, using default state")
        return RunState.default()
    try:
        return RunState.from_document(document)
    except ValidationError as exc:
        logger.warning("Checkpoint failed validation, using default state: %s", exc)
        return RunState.default()


class CheckpointStore(ABC):
    """Durable home of the single RunState document."""

    @abstractmethod
    async def load(self) -> RunState:
        """Return the stored state, or the empty default when nothing usable is stored.

        Raises:
            CheckpointLoadError: when the backing storage itself fails.
        """
        ...

    @abstractmethod
    async def save(self, state: RunState) -> None:
        """Persist ``state``.

        Raises:
            CheckpointSaveError: when the backing storage fails.
        """
        ...


class MemoryCheckpointStore(CheckpointStore):
    """Keeps the document in memory. Used by tests and dry runs."""

    def __init__(self, initial: RunState | None = None) -> None:
        self.document: dict[str, Any] | None = initial.to_document() if initial is not None else None
        self.save_count = 0

    async def load(self) -> RunState:
        if self.document is None:
            return RunState.default()
        return state_from_document(json.loads(json.dumps(self.document)))

    async def save(self, state: RunState) -> None:
        self.document = state.to_document()
        self.save_count += 1


class JsonFileCheckpointStore(CheckpointStore):
    """Stores the document as pretty-printed JSON in a single file.

    Writes go to a sibling temp file that is then renamed over the target, so
    an interrupted save never leaves a half-written checkpoint behind.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    async def load(self) -> RunState:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("Checkpoint file %s not found, starting from default state", self.path)
            return RunState.default()
        except OSError as exc:
            raise CheckpointLoadError(f"could not read {self.path}: {exc}") from exc

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Failed to parse checkpoint JSON, using default state: %s", exc)
            return RunState.default()

        return state_from_document(document)

    async def save(self, state: RunState) -> None:
        payload = json.dumps(state.to_document(), indent=2, ensure_ascii=False)
        temp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(payload + "\n", encoding="utf-8")
            os.replace(temp_path, self.path)
        except OSError as exc:
            raise CheckpointSaveError(f"could not write {self.path}: {exc}") from exc
        logger.info("Checkpoint saved to %s", self.path)


class ReadThroughCheckpointStore(MemoryCheckpointStore):
    """Reads from ``source`` on the first load and keeps every save in memory.

    Used by dry runs: load failures of the real store still surface through
    the engine, while the real store is never written.
    """

    def __init__(self, source: CheckpointStore) -> None:
        super().__init__()
        self.source = source

    async def load(self) -> RunState:
        if self.document is None:
            self.document = (await self.source.load()).to_document()
        return await super().load()
