
from pydantic import BaseModel
from typing import List, Optional


class CreateOrJoinIn(BaseModel):
    player_id: str
    name: str
    avatar: Optional[str] = None
    connection_id: Optional[str] = None
    code: Optional[str] = None


class ReadyIn(BaseModel):
    player_id: str
    is_ready: bool


class PlayerActionIn(BaseModel):
    player_id: str


class AnswerIn(BaseModel):
    player_id: str
    answer: str


class PublicPlayerOut(BaseModel):
    id: str
    name: str
    avatar: Optional[str] = None
    isReady: bool
    isConnected: bool
    score: int


class PublicSessionOut(BaseModel):
    code: str
    stage: str
    roundIndex: int
    hostId: str
    currentQuestionId: Optional[str] = None
    players: List[PublicPlayerOut]


class JoinOut(BaseModel):
    connectionId: str
    session: PublicSessionOut
