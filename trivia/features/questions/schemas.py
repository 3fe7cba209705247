from typing import Dict, List, Optional
from pydantic import BaseModel, Field as PydField, model_validator

from trivia.features.questions.selection import RoundFilter


# -----------------------------
# Catalogue
# -----------------------------

class PackOut(BaseModel):
    id: int
    slug: str
    label: str
    round_type: str
    description: Optional[str] = None
    question_count: int = 0
    audio_count: int = 0
    picture_count: int = 0


# -----------------------------
# Projection publique (jamais la réponse)
# -----------------------------

class QuestionPublicOut(BaseModel):
    id: int
    round_type: str
    answer_type: str
    text: str
    options: List[str] = []
    audio_url: Optional[str] = None
    image_url: Optional[str] = None


class QuestionsByIdsOut(BaseModel):
    questions: List[QuestionPublicOut]


# -----------------------------
# Tirage par pack
# -----------------------------

class SampleRoundIn(BaseModel):
    pack_id: int = PydField(..., ge=1)
    count: int = PydField(..., ge=1, le=200)


class SampleIn(BaseModel):
    rounds: List[SampleRoundIn] = PydField(..., min_length=1)
    round_filter: RoundFilter = RoundFilter.MIXED


class SampleOut(BaseModel):
    question_ids: List[int]


# -----------------------------
# Seed (YAML)
# -----------------------------

class QuestionSeedIn(BaseModel):
    key: Optional[str] = None
    round_type: str = PydField("general", pattern="^(general|audio|picture)$")
    answer_type: str = PydField("mcq", pattern="^(mcq|text)$")
    text: str = PydField(..., min_length=1)
    options: List[str] = []
    answer_index: Optional[int] = PydField(None, ge=0, le=3)
    answer_text: Optional[str] = None
    accepted_answers: List[str] = []
    explanation: str = ""
    audio_path: Optional[str] = None
    image_path: Optional[str] = None
    packs: List[str] = []

    @model_validator(mode="after")
    def _check_answer(self):
        if self.answer_type == "mcq":
            if len(self.options) != 4:
                raise ValueError("mcq questions need exactly 4 options")
            if self.answer_index is None:
                raise ValueError("mcq questions need answer_index")
        else:
            if not (self.answer_text or "").strip():
                raise ValueError("text questions need answer_text")
        return self


class PackSeedIn(BaseModel):
    slug: str = PydField(..., min_length=1)
    label: Optional[str] = None
    round_type: str = PydField("general", pattern="^(general|audio|picture)$")
    description: Optional[str] = None


class HealthOut(BaseModel):
    packs: int
    questions: int
    questions_by_round_type: Dict[str, int]
    rooms: int
    cached_questions: int
