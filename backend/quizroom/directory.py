from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

from .catalog import load_catalog
from .config import Settings, settings as default_settings
from .errors import SessionNotFound
from .events import Event, Notifier
from .logger import log_game_event
from .models import PlayerIdentity, Round
from .session import GameSession
from .timers import AsyncioScheduler, Scheduler, TimerSlot
from .utils import generate_code, now_ms

logger = logging.getLogger(__name__)


class SessionDirectory:
    """Short code -> running session.

    Creates sessions under fresh codes, looks them up, and discards the
    ones nobody is left in. Callers serialize work on a code through
    ``lock(code)``.
    """

    def __init__(
        self,
        notifier: Notifier,
        scheduler: Optional[Scheduler] = None,
        *,
        catalog: Optional[Sequence[Round]] = None,
        config: Settings = default_settings,
        clock: Callable[[], int] = now_ms,
        code_factory: Optional[Callable[[], str]] = None,
    ):
        self._notifier = notifier
        self._scheduler = scheduler or AsyncioScheduler()
        self._catalog: List[Round] = list(catalog) if catalog is not None else load_catalog(config=config)
        self._config = config
        self._clock = clock
        self._code_factory = code_factory
        self._sessions: Dict[str, GameSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._grace: Dict[str, TimerSlot] = {}

    def __contains__(self, code: str) -> bool:
        return self.normalize(code) in self._sessions

    @staticmethod
    def normalize(code: str) -> str:
        return code.strip().upper()

    def lock(self, code: str) -> asyncio.Lock:
        code = self.normalize(code)
        lock = self._locks.get(code)
        if lock is None:
            raise SessionNotFound(code)
        return lock

    def new_code(self) -> str:
        if self._code_factory is not None:
            return self._code_factory()
        return generate_code(self._config.CODE_LENGTH, self._config.CODE_ALPHABET, lambda c: c in self._sessions)

    def create(self, host: PlayerIdentity, rounds: Optional[Sequence[Round]] = None) -> GameSession:
        code = self.new_code()
        if code in self._sessions:
            raise ValueError(f"Session code {code} is already in use")

        session = GameSession(
            code,
            rounds if rounds is not None else self._catalog,
            host.id,
            self._notifier,
            self._scheduler,
            config=self._config,
            clock=self._clock,
        )
        # a reused code must not replay the previous session's history
        self._notifier.reset(code)
        self._sessions[code] = session
        self._locks[code] = asyncio.Lock()
        logger.info("Lobby created by %s. Code: %s", host.name, code)
        log_game_event("session_created", session_code=code, player_id=host.id, data={"rounds": len(session.rounds)})
        return session

    def find(self, code: str) -> Optional[GameSession]:
        return self._sessions.get(self.normalize(code))

    def get(self, code: str) -> GameSession:
        session = self.find(code)
        if session is None:
            raise SessionNotFound(self.normalize(code))
        return session

    def discard(self, code: str) -> None:
        code = self.normalize(code)
        session = self._sessions.pop(code, None)
        self.cancel_grace(code)
        self._grace.pop(code, None)
        self._locks.pop(code, None)
        if session is None:
            return

        session.close()
        self._notifier.reset(code)
        if not session.is_empty:
            self._notifier.notify(code, Event.SESSION_ENDED, {"code": code})
        logger.info("Lobby %s has been removed.", code)
        log_game_event("session_discarded", session_code=code, data={"stage": session.stage.value})

    def player_left(self, session: GameSession) -> None:
        """Collect a session once the departure left it abandoned."""
        if session.is_empty:
            self.discard(session.code)
        elif self.abandoned(session):
            self._start_grace(session.code)

    def player_returned(self, session: GameSession) -> None:
        if not self.abandoned(session):
            self.cancel_grace(session.code)

    @staticmethod
    def abandoned(session: GameSession) -> bool:
        """Nobody is connected, or the lobby lost the only player who can start it."""
        if not session.connected_players():
            return True
        return session.in_lobby and session.host_id not in session.players

    def grace_pending(self, code: str) -> bool:
        slot = self._grace.get(self.normalize(code))
        return slot is not None and slot.pending

    def cancel_grace(self, code: str) -> None:
        slot = self._grace.get(code)
        if slot is not None:
            slot.cancel()

    def _start_grace(self, code: str) -> None:
        slot = self._grace.setdefault(code, TimerSlot(self._scheduler, name=f"grace:{code}"))
        if slot.pending:
            return
        slot.arm(self._config.EMPTY_SESSION_GRACE_MS, lambda: self._expire(code))
        logger.info("Lobby %s is abandoned, discarding in %sms", code, self._config.EMPTY_SESSION_GRACE_MS)

    def _expire(self, code: str) -> None:
        session = self._sessions.get(code)
        if session is not None and self.abandoned(session):
            self.discard(code)
