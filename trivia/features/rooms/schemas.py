from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from trivia.features.questions.schemas import QuestionPublicOut
from trivia.features.questions.selection import RoundFilter, SelectionStrategy
from trivia.features.rooms.stages import AudioMode


# -----------------------------
# Création
# -----------------------------

class RoundIn(BaseModel):
    pack_id: int = Field(ge=1)
    count: int = Field(ge=0, le=500)


class RoomCreateIn(BaseModel):
    selected_packs: List[int] = Field(default_factory=list, examples=[[1, 2]])
    rounds: List[RoundIn] = Field(default_factory=list)
    selection_strategy: SelectionStrategy = SelectionStrategy.ALL_PACKS
    round_filter: RoundFilter = RoundFilter.MIXED
    # pas de borne ici : une valeur <= 0 est refusée par la sélection (INVALID_INPUT)
    total_questions: Optional[int] = Field(None, examples=[20])

    countdown_seconds: Optional[int] = Field(None, ge=0, le=3600)
    answer_seconds: Optional[int] = Field(None, ge=0, le=3600, description="0 = pas de limite")
    reveal_delay_seconds: Optional[int] = Field(None, ge=0, le=3600)
    reveal_seconds: Optional[int] = Field(None, ge=0, le=3600)

    audio_mode: AudioMode = AudioMode.DISPLAY

    @model_validator(mode="after")
    def _check_packs(self):
        if not self.selected_packs and not self.rounds:
            raise ValueError("selected_packs or rounds must name at least one pack")
        if self.selection_strategy == SelectionStrategy.PER_PACK and not self.rounds:
            raise ValueError("per_pack selection needs rounds (pack_id + count)")
        return self


class RoomCreateOut(BaseModel):
    id: int
    code: str
    phase: str
    question_count: int


# -----------------------------
# Joueurs
# -----------------------------

class JoinIn(BaseModel):
    name: str = Field(min_length=1, max_length=40)


class JoinOut(BaseModel):
    player_id: int
    code: str
    name: str


# -----------------------------
# Transitions
# -----------------------------

class StartOut(BaseModel):
    started: bool
    reason: Optional[str] = None


class AdvanceOut(BaseModel):
    advanced: bool
    finished: bool = False
    question_index: Optional[int] = None


class ForceCloseOut(BaseModel):
    forced: bool
    reason: Optional[str] = None
    stage: Optional[str] = None


class ResetOut(BaseModel):
    code: str
    phase: str
    question_count: int


# -----------------------------
# Réponses
# -----------------------------

class AnswerIn(BaseModel):
    player_id: int = Field(ge=1)
    question_id: int = Field(ge=1)
    option_index: Optional[int] = Field(None, examples=[2])
    answer_text: Optional[str] = Field(None, max_length=200)


class AnswerOut(BaseModel):
    accepted: bool
    reason: Optional[str] = None
    is_correct: Optional[bool] = None
    was_fastest_correct: bool = False
    auto_closed: bool = False


# -----------------------------
# Etat (polling)
# -----------------------------

class TimesOut(BaseModel):
    countdown_start_at: Optional[datetime] = None
    open_at: Optional[datetime] = None
    close_at: Optional[datetime] = None
    reveal_at: Optional[datetime] = None
    next_at: Optional[datetime] = None


class RevealOut(BaseModel):
    answer_index: Optional[int] = None
    answer_text: Optional[str] = None
    accepted_answers: List[str] = []
    explanation: str = ""


class WinnerOut(BaseModel):
    player_id: int
    received_at: datetime


class PlayerOut(BaseModel):
    id: int
    name: str
    score: int
    joined_at: datetime


class RoomStateOut(BaseModel):
    server_now: datetime
    code: str
    room_id: int
    phase: str
    stage: str
    question_index: int
    question_count: int
    audio_mode: str
    times: TimesOut
    question: Optional[QuestionPublicOut] = None
    reveal: Optional[RevealOut] = None
    winner: Optional[WinnerOut] = None
    players: List[PlayerOut]
