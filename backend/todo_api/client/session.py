"""
Client-side session persistence.

The token handed out by register/login has to survive restarts of whatever
talks to the API. All reads and writes of the stored session go through a
``SessionStore`` so no caller touches the storage medium directly.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class Session(BaseModel):
    id: int
    name: str
    email: str
    token: str


class SessionStore(ABC):
    """
    Base class for session persistence.

    All stores must implement explicit load / save / clear of the current
    session.
    """

    @abstractmethod
    def load(self) -> Optional[Session]:
        """Return the saved session, or None when logged out"""
        pass

    @abstractmethod
    def save(self, session: Session) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemorySessionStore(SessionStore):
    def __init__(self, session: Optional[Session] = None):
        self._session = session

    def load(self) -> Optional[Session]:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore(SessionStore):
    """Keeps the session as JSON on disk"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        if not self.path.exists():
            return None
        try:
            return Session.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (ValidationError, ValueError, OSError):
            # Unreadable session file means logged out
            logger.warning(f"Ignoring unreadable session file {self.path}")
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(session.model_dump()), encoding="utf-8")
        tmp_path.replace(self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
