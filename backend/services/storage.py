"""
Local storage service.

Holds three kinds of data under one base directory:
- Per-dataset session directories (raw upload + profile JSON), expiring
  after SESSION_TTL_HOURS
- Application key-value records (the usage quota)
- Saved dashboards, keyed by name

The directory comes from AUTODASH_DATA_DIR and defaults to backend/temp_data.
"""

import json
import logging
import os
import re
import shutil
from pathlib import Path
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


# Local data directory (AUTODASH_DATA_DIR overrides)
TEMP_DIR = Path(os.getenv("AUTODASH_DATA_DIR", Path(__file__).parent.parent / "temp_data"))

# Session TTL in hours
SESSION_TTL_HOURS = 24

# App-wide records live beside the sessions but are never expired
APP_DIR_NAME = "_app"
DASHBOARDS_KEY = "autodash-dashboards"

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")
_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class TempStorage:
    """File-backed storage for datasets, app state and dashboards."""

    def __init__(self, base_dir: Path = TEMP_DIR):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.app_dir = self.base_dir / APP_DIR_NAME
        self.app_dir.mkdir(exist_ok=True)

    def _get_session_dir(self, session_id: str) -> Path:
        """Get the directory for a session."""
        if not _SESSION_ID_RE.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.base_dir / session_id

    def session_exists(self, session_id: str) -> bool:
        try:
            return self._get_session_dir(session_id).is_dir()
        except ValueError:
            return False

    def create_session(self, session_id: str) -> Path:
        """Create a new session directory."""
        session_dir = self._get_session_dir(session_id)
        session_dir.mkdir(exist_ok=True)

        # Store metadata
        metadata = {
            "created_at": datetime.utcnow().isoformat(),
            "expires_at": (datetime.utcnow() + timedelta(hours=SESSION_TTL_HOURS)).isoformat(),
        }
        with open(session_dir / "metadata.json", "w") as f:
            json.dump(metadata, f)

        return session_dir

    def save_file(self, session_id: str, filename: str, content: bytes) -> Path:
        """Save a file to the session directory."""
        session_dir = self._get_session_dir(session_id)
        # Create the session on first write
        if not session_dir.exists():
            self.create_session(session_id)

        # Base name only, never a path outside the session
        file_path = session_dir / Path(filename).name
        with open(file_path, "wb") as f:
            f.write(content)

        return file_path

    def find_data_file(self, session_id: str, suffixes: set) -> Optional[Path]:
        """Return the first uploaded file in a session with one of ``suffixes``."""
        if not self.session_exists(session_id):
            return None
        for f in sorted(self._get_session_dir(session_id).iterdir()):
            if f.suffix.lower() in suffixes:
                return f
        return None

    def save_json(self, session_id: str, name: str, data: dict) -> Path:
        """Save JSON data to the session directory."""
        session_dir = self._get_session_dir(session_id)
        if not session_dir.exists():
            self.create_session(session_id)

        file_path = session_dir / f"{name}.json"
        _write_json(file_path, data)
        return file_path

    def get_json(self, session_id: str, name: str) -> Optional[dict]:
        """Retrieve JSON data from the session directory."""
        if not self.session_exists(session_id):
            return None
        return _read_json(self._get_session_dir(session_id) / f"{name}.json")

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and all its data."""
        if not self.session_exists(session_id):
            return False
        shutil.rmtree(self._get_session_dir(session_id))
        return True

    def cleanup_expired(self) -> int:
        """Remove expired sessions. Returns count of removed sessions."""
        removed = 0
        now = datetime.utcnow()

        for session_dir in self.base_dir.iterdir():
            if not session_dir.is_dir() or session_dir.name == APP_DIR_NAME:
                continue

            # Directories without metadata are not sessions
            metadata_path = session_dir / "metadata.json"
            if not metadata_path.exists():
                continue
            try:
                with open(metadata_path) as f:
                    metadata = json.load(f)
                expired = now > datetime.fromisoformat(metadata["expires_at"])
            except (ValueError, KeyError):
                # If metadata is corrupt, remove the session
                logger.warning("Corrupt metadata in session %s, removing it", session_dir.name)
                expired = True

            if expired:
                shutil.rmtree(session_dir)
                removed += 1

        return removed

    # === Application key-value records ===

    def _value_path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.app_dir / f"{key}.json"

    def get_value(self, key: str) -> Optional[Any]:
        """Read an application record, or None if it was never written."""
        return _read_json(self._value_path(key))

    def set_value(self, key: str, value: Any) -> None:
        """Write an application record, replacing it atomically."""
        _write_json(self._value_path(key), value)

    # === Saved dashboards ===

    def list_dashboards(self) -> Dict[str, dict]:
        return self.get_value(DASHBOARDS_KEY) or {}

    def get_dashboard(self, name: str) -> Optional[dict]:
        return self.list_dashboards().get(name)

    def save_dashboard(self, name: str, bundle: dict) -> None:
        # All dashboards share one record; saving a name replaces it
        dashboards = self.list_dashboards()
        dashboards[name] = bundle
        self.set_value(DASHBOARDS_KEY, dashboards)
        logger.info("Saved dashboard %r", name)

    def delete_dashboard(self, name: str) -> bool:
        dashboards = self.list_dashboards()
        if name not in dashboards:
            return False
        del dashboards[name]
        self.set_value(DASHBOARDS_KEY, dashboards)
        logger.info("Deleted dashboard %r", name)
        return True


def _read_json(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    with open(path, "r") as f:
        return json.load(f)


def _write_json(path: Path, data: Any) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
    os.replace(tmp_path, path)


# Global storage instance
storage = TempStorage()
