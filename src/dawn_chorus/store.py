"""Persistent JSON store with freshness metadata.

Backs the client-side cache tier. Every file is a metadata envelope::

    {"meta": {"source": ..., "fetched_at": ..., "valid_until": ...}, "data": {...}}

Reads return the payload whether or not it has expired; ``is_fresh`` answers
the freshness question separately, so callers can still fall back to an
expired report when the server is unreachable.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003
from typing import Any

logger = logging.getLogger(__name__)


class DataStore:
    """Read/write metadata-enveloped JSON files under a base directory."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir

    def read(self, path: Path) -> dict[str, Any] | None:
        """Read the ``data`` payload, or None if the file is missing or unreadable."""
        envelope = self.read_raw(path)
        if envelope is None:
            return None
        return envelope.get("data", envelope)

    def read_raw(self, path: Path) -> dict[str, Any] | None:
        """Read the full envelope (meta + data)."""
        full = self._resolve(path)
        if not full.exists():
            return None
        try:
            with full.open() as f:
                result = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable cache file %s: %s", full, e)
            return None
        if not isinstance(result, dict):
            logger.warning("Cache file %s is not a JSON object, ignoring", full)
            return None
        return result

    def write(
        self,
        path: Path,
        data: Any,
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Write data wrapped in a metadata envelope.

        Args:
            path: Relative path under base_dir (e.g. ``live/birds/45.500_-122.600.json``).
            data: JSON-serializable payload stored under the ``data`` key.
            source: Where the data came from (e.g. the API base URL).
            valid_until: Expiry timestamp. None means never fresh.
            **params: Extra metadata fields (location, query params, etc.).

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        meta: dict[str, Any] = {
            "source": source,
            "fetched_at": datetime.now(UTC).isoformat(),
        }
        if valid_until is not None:
            meta["valid_until"] = valid_until.isoformat()
        if params:
            meta.update(params)

        with full.open("w") as f:
            json.dump({"meta": meta, "data": data}, f, indent=2)

        return full

    def delete(self, path: Path) -> bool:
        """Remove a stored file. Returns True if something was deleted."""
        full = self._resolve(path)
        if not full.exists():
            return False
        full.unlink()
        return True

    def valid_until(self, path: Path) -> datetime | None:
        """Expiry timestamp of a stored file (UTC), or None if missing/unset."""
        envelope = self.read_raw(path)
        if envelope is None:
            return None
        raw = envelope.get("meta", {}).get("valid_until")
        if raw is None:
            return None
        expiry = datetime.fromisoformat(raw)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return expiry

    def is_fresh(self, path: Path) -> bool:
        """Check if a file exists and hasn't expired.

        Returns False if the file is missing, has no ``valid_until``, or
        the expiry time has passed.
        """
        expiry = self.valid_until(path)
        if expiry is None:
            return False
        return datetime.now(UTC) < expiry

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full
