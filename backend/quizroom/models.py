from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


def _question_id() -> str:
    return uuid4().hex[:7]


# States: LOBBY -> ROUND_START -> QUESTION_ASKED -> ANSWER_COLLECTION -> SCORING_REVIEW
#         -> (QUESTION_ASKED | ROUND_END) -> (ROUND_START | GAME_OVER)
class Stage(str, Enum):
    LOBBY = "LOBBY"
    ROUND_START = "ROUND_START"
    QUESTION_ASKED = "QUESTION_ASKED"
    ANSWER_COLLECTION = "ANSWER_COLLECTION"
    SCORING_REVIEW = "SCORING_REVIEW"
    ROUND_END = "ROUND_END"
    GAME_OVER = "GAME_OVER"


class AnswerKind(str, Enum):
    TEXT_INPUT = "text_input"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"


class Question(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=_question_id, alias="questionId")
    text: str
    kind: AnswerKind = Field(AnswerKind.TEXT_INPUT, alias="type")
    choices: Optional[List[str]] = Field(None, alias="options")
    correct_answer: str = Field(alias="correctAnswer")
    point_value: PositiveInt = Field(100, alias="pointValue")
    time_limit_ms: PositiveInt = Field(15000, alias="timeLimitMs")


class Round(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(alias="roundId")
    name: str
    questions: List[Question] = Field(default_factory=list)
    # index of the question being asked; only ever moves forward
    cursor: int = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.questions)

    def current_question(self) -> Optional[Question]:
        if self.exhausted:
            return None
        return self.questions[self.cursor]


class PlayerIdentity(BaseModel):
    """The already-authenticated user a player is created from."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    avatar: Optional[str] = None


class Player(BaseModel):
    id: str
    name: str
    avatar: Optional[str] = None
    connection_id: Optional[str] = None
    score: int = 0
    is_ready: bool = False
    is_host: bool = False
    last_answer: Optional[str] = None
    response_time_ms: Optional[int] = None

    @classmethod
    def from_identity(cls, identity: PlayerIdentity, connection_id: str, is_host: bool = False) -> "Player":
        return cls(
            id=identity.id,
            name=identity.name,
            avatar=identity.avatar,
            connection_id=connection_id,
            is_host=is_host,
        )

    @property
    def is_connected(self) -> bool:
        return self.connection_id is not None

    def sanitized(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "isReady": self.is_ready,
            "isConnected": self.is_connected,
            "score": self.score,
        }

    def leaderboard_entry(self) -> Dict[str, Any]:
        return {"name": self.name, "score": self.score, "avatar": self.avatar, "id": self.id}
