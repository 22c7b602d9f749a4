from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from .directory import SessionDirectory
from .errors import LobbyError
from .events import Event, Notifier, event_store
from .models import PlayerIdentity
from .session import GameSession

logger = logging.getLogger(__name__)


class GameController:
    """Inbound operations from clients, one session lock at a time."""

    def __init__(self, directory: SessionDirectory, notifier: Notifier):
        self.directory = directory
        self.notifier = notifier

    async def create_or_join(
        self, identity: PlayerIdentity, connection_id: str, code: Optional[str] = None
    ) -> dict[str, Any]:
        if code is None:
            session = self.directory.create(identity)
            async with self.directory.lock(session.code):
                session.join(identity, connection_id)
                return session.snapshot()

        async with self._session(code, identity.id, connection_id) as session:
            session.join(identity, connection_id)
            self.directory.player_returned(session)
            return session.snapshot()

    async def set_ready(self, code: str, player_id: str, is_ready: bool) -> bool:
        async with self._session(code, player_id) as session:
            return session.set_ready(player_id, is_ready)

    async def start_game(self, code: str, player_id: str) -> bool:
        async with self._session(code, player_id) as session:
            return session.start_game(player_id)

    async def submit_answer(self, code: str, player_id: str, answer_text: str) -> bool:
        async with self._session(code, player_id) as session:
            return session.submit_answer(player_id, answer_text)

    async def disconnect(self, code: str, player_id: str) -> bool:
        async with self._session(code, player_id) as session:
            left = session.disconnect(player_id)
            if left:
                self.directory.player_left(session)
            return left

    async def snapshot(self, code: str) -> dict[str, Any]:
        async with self.directory.lock(code):
            return self.directory.get(code).snapshot()

    @asynccontextmanager
    async def _session(
        self, code: str, player_id: str, connection_id: Optional[str] = None
    ) -> AsyncIterator[GameSession]:
        session: Optional[GameSession] = None
        try:
            async with self.directory.lock(code):
                session = self.directory.get(code)
                yield session
        except LobbyError as exc:
            self._report(exc, session, player_id, connection_id)
            raise

    def _report(
        self,
        exc: LobbyError,
        session: Optional[GameSession],
        player_id: str,
        connection_id: Optional[str],
    ) -> None:
        payload = {"message": str(exc)}
        logger.info("lobby_error for %s: %s", player_id, exc)

        if exc.broadcast and session is not None:
            self.notifier.notify(session.code, Event.LOBBY_ERROR, payload)
            return

        if connection_id is None and session is not None:
            player = session.players.get(player_id)
            connection_id = player.connection_id if player else None
        if connection_id is not None:
            self.notifier.notify_one(connection_id, Event.LOBBY_ERROR, payload)


controller = GameController(SessionDirectory(event_store), event_store)
