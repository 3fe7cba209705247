from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from trivia.db.models.base import BaseModelDB

class Answer(BaseModelDB, table=True):
    __table_args__ = (
        # une seule réponse par joueur et par question : c'est ce qui empêche le double score
        UniqueConstraint("room_id", "player_id", "question_id", name="uq_answers_room_player_question"),
    )

    room_id: int = Field(foreign_key="room.id", index=True)
    player_id: int = Field(foreign_key="player.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)

    option_index: Optional[int] = Field(default=None)
    answer_text: Optional[str] = Field(default=None)
    is_correct: bool = Field(default=False, nullable=False)
