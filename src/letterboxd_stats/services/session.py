"""Persistence of the enriched movie set between runs."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from letterboxd_stats.models import EnrichedMovie

logger = logging.getLogger(__name__)

SESSION_KEY = "letterboxdProcessedData"

_MOVIE_LIST = TypeAdapter(list[EnrichedMovie])


class StorageFailure(RuntimeError):
    """Raised internally when the session slot cannot be written or read."""


class SessionStore:
    """Key-value session storage backed by a single JSON file.

    The enriched movie list lives under a fixed key. A failed save leaves the
    in-memory session usable; a corrupt slot is cleared and reported as absent.
    """

    def __init__(
        self,
        path: Path,
        *,
        key: str = SESSION_KEY,
        quota_bytes: int | None = None,
    ) -> None:
        self._path = path
        self._key = key
        self._quota_bytes = quota_bytes

    @property
    def path(self) -> Path:
        return self._path

    def save(self, movies: Sequence[EnrichedMovie]) -> bool:
        """Persist ``movies``; returns False (and logs a warning) if storage failed."""
        payload = _MOVIE_LIST.dump_python(list(movies), mode="json", by_alias=True)
        try:
            slots = self._read_slots_for_update()
            slots[self._key] = payload
            self._write_slots(slots)
        except StorageFailure as exc:
            logger.warning("Unable to save session to %s: %s", self._path, exc)
            return False
        logger.info("Saved %d movies to %s", len(movies), self._path)
        return True

    def load(self) -> list[EnrichedMovie] | None:
        """Return the stored movies, or None when the slot is absent or unusable."""
        try:
            slots = self._read_slots()
        except StorageFailure as exc:
            logger.warning("Stored session at %s is unreadable, clearing it: %s", self._path, exc)
            self._discard_file()
            return None

        raw = slots.get(self._key)
        if raw is None:
            return None
        try:
            movies = _MOVIE_LIST.validate_python(raw)
        except ValidationError as exc:
            logger.warning("Stored session under %r is invalid, clearing it: %s", self._key, exc)
            self.clear()
            return None
        if not movies:
            return None

        logger.info("Loaded %d movies from %s", len(movies), self._path)
        return movies

    def clear(self) -> None:
        """Remove the session slot, keeping any other keys in the file."""
        try:
            slots = self._read_slots()
        except StorageFailure:
            self._discard_file()
            return
        if self._key not in slots:
            return
        del slots[self._key]
        try:
            self._write_slots(slots)
        except StorageFailure as exc:
            logger.warning("Unable to clear session at %s: %s", self._path, exc)

    def _read_slots(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            raise StorageFailure(str(exc)) from exc
        if not isinstance(data, dict):
            raise StorageFailure("session file does not hold a JSON object")
        return data

    def _read_slots_for_update(self) -> dict[str, Any]:
        try:
            return self._read_slots()
        except StorageFailure:
            # the slot is overwritten anyway; other keys in a corrupt file are lost
            return {}

    def _write_slots(self, slots: dict[str, Any]) -> None:
        serialized = json.dumps(slots, ensure_ascii=False)
        size = len(serialized.encode("utf-8"))
        if self._quota_bytes is not None and size > self._quota_bytes:
            raise StorageFailure(
                f"session payload of {size} bytes exceeds the {self._quota_bytes}-byte quota"
            )

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(serialized)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageFailure(str(exc)) from exc

    def _discard_file(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Unable to remove %s: %s", self._path, exc)


__all__ = ["SESSION_KEY", "SessionStore", "StorageFailure"]
