"""The game session state machine.

A ``GameSession`` owns one lobby: its roster, the rounds it plays, the
current stage and the single timer that drives automatic advancement.
Every public method runs to completion without awaiting, so on the
event loop no two mutations of the same session ever interleave. Timer
callbacks go through ``TimerSlot`` which drops superseded firings.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import Settings, settings as default_settings
from .errors import GameInProgress, IllegalTransition, NotEnoughReadyPlayers, NotHost, SessionFull
from .events import Event, Notifier
from .logger import log_game_event
from .models import Player, PlayerIdentity, Question, Round, Stage
from .scoring import is_correct, points_for
from .timers import Scheduler, TimerSlot
from .utils import now_ms, sort_leaderboard

logger = logging.getLogger(__name__)


TRANSITIONS: Dict[Stage, frozenset] = {
    Stage.LOBBY: frozenset({Stage.ROUND_START}),
    Stage.ROUND_START: frozenset({Stage.QUESTION_ASKED, Stage.ROUND_END}),
    Stage.QUESTION_ASKED: frozenset({Stage.ANSWER_COLLECTION}),
    Stage.ANSWER_COLLECTION: frozenset({Stage.SCORING_REVIEW}),
    Stage.SCORING_REVIEW: frozenset({Stage.QUESTION_ASKED, Stage.ROUND_END}),
    Stage.ROUND_END: frozenset({Stage.ROUND_START, Stage.GAME_OVER}),
    Stage.GAME_OVER: frozenset(),
}

# stages in which a question is on screen (asked, open, or being scored)
QUESTION_STAGES = frozenset({Stage.QUESTION_ASKED, Stage.ANSWER_COLLECTION, Stage.SCORING_REVIEW})


class GameSession:
    def __init__(
        self,
        code: str,
        rounds: Sequence[Round],
        host_id: str,
        notifier: Notifier,
        scheduler: Scheduler,
        *,
        config: Settings = default_settings,
        clock: Callable[[], int] = now_ms,
    ):
        self.code = code
        self.host_id = host_id
        # private copies so cursors never leak between sessions
        self.rounds: List[Round] = [r.model_copy(update={"cursor": 0}) for r in rounds]
        self.players: Dict[str, Player] = {}
        self.stage = Stage.LOBBY
        self.round_index = 0
        self.question_started_at: Optional[int] = None

        self._notifier = notifier
        self._config = config
        self._clock = clock
        self._timer = TimerSlot(scheduler, name=f"session:{code}")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def in_lobby(self) -> bool:
        return self.stage == Stage.LOBBY

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def timer_pending(self) -> bool:
        return self._timer.pending

    def connected_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.is_connected]

    def current_round(self) -> Optional[Round]:
        if 0 <= self.round_index < len(self.rounds):
            return self.rounds[self.round_index]
        return None

    def current_question(self) -> Optional[Question]:
        rnd = self.current_round()
        return rnd.current_question() if rnd else None

    def active_question_id(self) -> Optional[str]:
        if self.stage not in QUESTION_STAGES:
            return None
        question = self.current_question()
        return question.id if question else None

    def leaderboard(self) -> List[dict[str, Any]]:
        return sort_leaderboard([p.leaderboard_entry() for p in self.players.values()])

    def snapshot(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "stage": self.stage.value,
            "roundIndex": self.round_index,
            "hostId": self.host_id,
            "currentQuestionId": self.active_question_id(),
            "players": [p.sanitized() for p in self.players.values()],
        }

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def join(self, identity: PlayerIdentity, connection_id: str) -> Player:
        """Add a player, or reattach the connection of a returning one."""
        player = self.players.get(identity.id)
        if player is not None:
            if player.connection_id is not None and player.connection_id != connection_id:
                self._notifier.forget(player.connection_id)
            player.connection_id = connection_id
            logger.info("%s rejoined %s (score=%s)", player.name, self.code, player.score)
        else:
            if not self.in_lobby:
                raise GameInProgress()
            if len(self.players) >= self._config.MAX_PLAYERS:
                raise SessionFull(self._config.MAX_PLAYERS)
            player = Player.from_identity(identity, connection_id, is_host=identity.id == self.host_id)
            self.players[player.id] = player
            logger.info("%s joined %s", player.name, self.code)

        log_game_event("player_joined", session_code=self.code, player_id=player.id)
        self.broadcast_lobby()
        return player

    def set_ready(self, player_id: str, is_ready: bool) -> bool:
        player = self.players.get(player_id)
        if player is None or not self.in_lobby:
            return False
        player.is_ready = is_ready
        self.broadcast_lobby()
        return True

    def disconnect(self, player_id: str) -> bool:
        """Drop a player in the lobby; mid-game only forget their connection."""
        player = self.players.get(player_id)
        if player is None:
            return False

        if player.connection_id is not None:
            self._notifier.forget(player.connection_id)
        if self.in_lobby:
            del self.players[player_id]
        else:
            player.connection_id = None
        logger.info(
            "%s left %s during %s (%s connected)",
            player.name, self.code, self.stage.value, len(self.connected_players()),
        )

        if self.players:
            self.broadcast_lobby()
        return True

    def broadcast_lobby(self) -> None:
        self._notifier.notify(
            self.code,
            Event.LOBBY_UPDATE,
            {
                "code": self.code,
                "players": [p.sanitized() for p in self.players.values()],
                "stage": self.stage.value,
            },
        )

    # ------------------------------------------------------------------
    # Game flow
    # ------------------------------------------------------------------

    def start_game(self, player_id: str) -> bool:
        player = self.players.get(player_id)
        if player is None:
            return False
        if not player.is_host:
            raise NotHost()
        if not self.in_lobby:
            raise GameInProgress()

        ready = sum(1 for p in self.players.values() if p.is_ready)
        if ready < self._config.MIN_READY_PLAYERS:
            raise NotEnoughReadyPlayers(self._config.MIN_READY_PLAYERS)

        for p in self.players.values():
            p.score = 0
            p.is_ready = False
        self.round_index = 0

        log_game_event("game_started", session_code=self.code, data={"players": len(self.players)})
        self.broadcast_lobby()
        self._transition(Stage.ROUND_START)
        self._timer.arm(self._config.ROUND_START_DELAY_MS, self.advance_to_question)
        return True

    def advance_to_question(self) -> None:
        rnd = self.current_round()
        if rnd is None or rnd.exhausted:
            self._transition(Stage.ROUND_END)
            return

        question = rnd.current_question()
        for p in self.players.values():
            p.last_answer = None
            p.response_time_ms = None
        self.question_started_at = self._clock()

        self._transition(Stage.QUESTION_ASKED)
        self._notifier.notify(
            self.code,
            Event.NEW_QUESTION,
            {
                "questionId": question.id,
                "text": question.text,
                "kind": question.kind.value,
                "choices": question.choices,
                "timeLimitMs": question.time_limit_ms,
                "currentRound": self.round_index + 1,
                "totalRounds": len(self.rounds),
                "questionNumber": rnd.cursor + 1,
                "totalQuestionsInRound": len(rnd.questions),
            },
        )
        self._transition(Stage.ANSWER_COLLECTION)

    def submit_answer(self, player_id: str, answer_text: str) -> bool:
        """Record an answer. Anything out of turn is ignored."""
        player = self.players.get(player_id)
        if (
            player is None
            or not player.is_connected
            or player.last_answer is not None
            or self.stage != Stage.ANSWER_COLLECTION
        ):
            return False

        question = self.current_question()
        player.last_answer = answer_text
        player.response_time_ms = self._clock() - (self.question_started_at or 0)
        self._notifier.notify_one(player.connection_id, Event.ANSWER_RECEIVED, {"questionId": question.id})
        log_game_event(
            "answer_submitted",
            session_code=self.code,
            player_id=player.id,
            data={"question_id": question.id, "response_time_ms": player.response_time_ms},
        )

        if all(p.last_answer is not None for p in self.connected_players()):
            self._timer.cancel()
            self._transition(Stage.SCORING_REVIEW)
        return True

    def close(self) -> None:
        self._timer.cancel()
        for player in self.players.values():
            if player.connection_id is not None:
                self._notifier.forget(player.connection_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, stage: Stage) -> None:
        if stage not in TRANSITIONS[self.stage]:
            raise IllegalTransition(f"{self.code}: {self.stage.value} -> {stage.value}")

        self.stage = stage
        self._notifier.notify(
            self.code,
            Event.STAGE_UPDATE,
            {
                "stage": stage.value,
                "roundIndex": self.round_index,
                "currentQuestionId": self.active_question_id(),
            },
        )
        logger.debug("%s -> %s (round=%s)", self.code, stage.value, self.round_index)

        if stage == Stage.ANSWER_COLLECTION:
            question = self.current_question()
            self._timer.arm(question.time_limit_ms + self._config.ANSWER_BUFFER_MS, self._collection_timed_out)
        elif stage == Stage.SCORING_REVIEW:
            self._score_question()
        elif stage == Stage.ROUND_END:
            self._timer.arm(self._config.ROUND_END_DELAY_MS, self._next_round)
        elif stage == Stage.GAME_OVER:
            self._timer.cancel()
            leaderboard = self.leaderboard()
            self._notifier.notify(self.code, Event.GAME_OVER, {"leaderboard": leaderboard})
            log_game_event("game_over", session_code=self.code, data={"leaderboard": leaderboard})

    def _collection_timed_out(self) -> None:
        if self.stage == Stage.ANSWER_COLLECTION:
            self._transition(Stage.SCORING_REVIEW)

    def _score_question(self) -> None:
        rnd = self.current_round()
        question = rnd.current_question()

        results = []
        for p in self.players.values():
            earned = points_for(question, p.last_answer, p.response_time_ms)
            p.score += earned
            results.append(
                {
                    "id": p.id,
                    "score": p.score,
                    "lastAnswer": p.last_answer,
                    "isCorrect": is_correct(question, p.last_answer),
                    "pointsEarned": earned,
                }
            )
        rnd.cursor += 1

        self._notifier.notify(
            self.code,
            Event.QUESTION_RESULTS,
            {
                "correctAnswer": question.correct_answer,
                "perPlayerResults": results,
                "leaderboard": self.leaderboard(),
                "nextDelaySeconds": self._config.REVIEW_DELAY_MS // 1000,
            },
        )
        log_game_event(
            "question_scored",
            session_code=self.code,
            data={"question_id": question.id, "correct": sum(1 for r in results if r["isCorrect"])},
        )
        self._timer.arm(self._config.REVIEW_DELAY_MS, self.advance_to_question)

    def _next_round(self) -> None:
        self.round_index += 1
        if self.round_index < len(self.rounds):
            self._transition(Stage.ROUND_START)
            self._timer.arm(self._config.ROUND_START_DELAY_MS, self.advance_to_question)
        else:
            self._transition(Stage.GAME_OVER)
