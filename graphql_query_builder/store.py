"""Session storage with inactivity expiry."""

import asyncio
import json
import logging
import os
import re
import secrets
import time
from pathlib import Path
from typing import Callable, Optional

from . import utils
from .errors import SessionNotFound, StoreError
from .model import QueryState

logger = logging.getLogger(__name__)

SESSION_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def generate_session_id() -> str:
    """Random 16-byte session id as lowercase hex."""
    return secrets.token_hex(16)


def normalize_session_id(session_id: str) -> str:
    """
    Normalise a caller-supplied session id.

    Raises:
        SessionNotFound: If the id cannot be a session id at all
    """
    normalized = (session_id or "").strip().lower()
    if not SESSION_ID_RE.match(normalized):
        raise SessionNotFound(session_id)
    return normalized


class SessionStore:
    """Persistence for session documents.

    ``ttl`` is the inactivity window in seconds; ``0`` disables expiry.
    """

    ttl: int = 0

    async def load(self, session_id: str) -> Optional[QueryState]:
        raise NotImplementedError

    async def save(self, session_id: str, state: QueryState) -> None:
        raise NotImplementedError

    async def delete(self, session_id: str) -> bool:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    """In-process store holding serialized copies, so callers never share objects."""

    def __init__(self, ttl: int = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    def _expired(self, touched: float) -> bool:
        return bool(self.ttl) and self.clock() - touched > self.ttl

    async def load(self, session_id: str) -> Optional[QueryState]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        payload, touched = entry
        if self._expired(touched):
            logger.warning("Session %s expired", session_id)
            del self._entries[session_id]
            return None
        self._entries[session_id] = (payload, self.clock())
        return QueryState.from_dict(json.loads(payload))

    async def save(self, session_id: str, state: QueryState) -> None:
        self._entries[session_id] = (json.dumps(state.to_dict()), self.clock())

    async def delete(self, session_id: str) -> bool:
        return self._entries.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._entries)


class FileSessionStore(SessionStore):
    """
    One JSON file per session under ``directory``.

    Expiry uses the file modification time, refreshed on every load.
    """

    def __init__(self, directory: str, ttl: int = 3600):
        self.directory = utils.expand_path(directory)
        self.ttl = ttl

    def path_for(self, session_id: str) -> str:
        return utils.join(self.directory, f"{session_id}.json")

    async def load(self, session_id: str) -> Optional[QueryState]:
        return await asyncio.to_thread(self._load, session_id)

    async def save(self, session_id: str, state: QueryState) -> None:
        await asyncio.to_thread(self._save, session_id, state)

    async def delete(self, session_id: str) -> bool:
        return await asyncio.to_thread(self._delete, session_id)

    def _load(self, session_id: str) -> Optional[QueryState]:
        path = self.path_for(session_id)
        if not utils.exists(path):
            return None

        try:
            if self.ttl and time.time() - os.path.getmtime(path) > self.ttl:
                logger.warning("Session %s expired", session_id)
                os.remove(path)
                return None
            data = utils.read_json(path)
            os.utime(path)
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read session {session_id}: {e}") from e

        logger.debug("Loaded session %s from %s", session_id, path)
        return QueryState.from_dict(data["state"])

    def _save(self, session_id: str, state: QueryState) -> None:
        path = self.path_for(session_id)
        try:
            utils.ensure_dir(self.directory)
            utils.write_json(path, {"session_id": session_id, "saved_at": utils.now_iso(), "state": state.to_dict()})
        except OSError as e:
            raise StoreError(f"Could not write session {session_id}: {e}") from e
        logger.debug("Saved session %s to %s", session_id, path)

    def _delete(self, session_id: str) -> bool:
        path = self.path_for(session_id)
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError(f"Could not delete session {session_id}: {e}") from e
        return True

    def session_ids(self) -> list[str]:
        """Ids of stored (possibly expired) sessions, oldest first."""
        if not utils.exists(self.directory):
            return []
        files = sorted(Path(self.directory).glob("*.json"), key=lambda p: p.stat().st_mtime)
        return [p.stem for p in files if SESSION_ID_RE.match(p.stem)]
