"""JSON file storage for processed sessions."""

import json
import logging
from pathlib import Path
from typing import List, Optional

from config.settings import SESSIONS_DIR
from models.session import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """Store sessions as one JSON file each in a directory."""

    def __init__(self, directory: Optional[Path] = None):
        """Initialize session store.

        Args:
            directory: Directory holding session files, defaults to SESSIONS_DIR
        """
        self.directory = Path(directory) if directory else SESSIONS_DIR

    def _session_path(self, session_id: str) -> Path:
        return self.directory / f"{session_id}.json"

    def save_session(self, session: Session, include_raw_data: bool = True) -> Path:
        """Save a session, replacing any stored session with the same id.

        Args:
            session: Session to save
            include_raw_data: Also store the sample streams needed for reprocessing

        Returns:
            Path of the written file
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._session_path(session.session_id)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(session.to_dict(include_raw_data=include_raw_data), f, indent=2, default=str)
        logger.debug(f"Saved session {session.session_id} to {path}")
        return path

    def has_session(self, session_id: str) -> bool:
        return self._session_path(session_id).exists()

    def load_session(self, session_id: str) -> Optional[Session]:
        """Load one session by id, or None if it is missing or unreadable."""
        path = self._session_path(session_id)
        if not path.exists():
            return None
        return self._read_session(path)

    def load_sessions(self) -> List[Session]:
        """Load all stored sessions, most recent first. Unreadable files are skipped."""
        if not self.directory.exists():
            return []

        sessions = []
        for path in sorted(self.directory.glob('*.json')):
            session = self._read_session(path)
            if session is not None:
                sessions.append(session)

        return sorted(sessions, key=lambda s: s.date, reverse=True)

    def delete_session(self, session_id: str) -> bool:
        """Delete a stored session.

        Returns:
            True if a session file was removed
        """
        path = self._session_path(session_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted session {session_id}")
        return True

    def _read_session(self, path: Path) -> Optional[Session]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return Session.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load session file {path}: {e}")
            return None
