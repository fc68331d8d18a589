"""
Stores a timeline in a JSON file, assuming a user doesn't have a lot of
content: the timeline is loaded and stored all at once.
"""

import logging
import os
from contextlib import suppress
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from igshelf.exceptions import PersistenceError
from igshelf.models.media import Media

log = logging.getLogger(__name__)

_timeline_adapter = TypeAdapter(list[Media])


class JSONTimelineStore:
    """A timeline store backed by a single JSON file, e.g. timeline.json."""

    def __init__(self, path: Path):
        self.path = Path(path)

    # Declared ahead of list(), which shadows the builtin in the class body.
    def store(self, timeline: list[Media]) -> None:
        """
        Persists the timeline on disk. The file is always overwritten, and a
        reader never sees a half-written file.
        """
        payload = _timeline_adapter.dump_json(timeline, indent=2)
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(payload)
            os.replace(temp_path, self.path)
        except OSError as e:
            with suppress(OSError):
                temp_path.unlink(missing_ok=True)
            raise PersistenceError(
                f"failed to write timeline on disk {self.path}: {e}"
            ) from e
        log.debug(f"Stored {len(timeline)} posts in {self.path}.")

    def list(self) -> list[Media]:
        """Returns all the media as it was stored."""
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise PersistenceError(
                f"failed to read timeline from disk {self.path}: {e}"
            ) from e

        try:
            return _timeline_adapter.validate_json(raw)
        except ValidationError as e:
            raise PersistenceError(f"failed to unmarshal timeline {self.path}: {e}") from e
