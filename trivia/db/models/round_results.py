from datetime import datetime
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from trivia.db.models.base import BaseModelDB, utc_now

class RoundResult(BaseModelDB, table=True):
    """Première bonne réponse reçue pour une question d'une salle."""

    __table_args__ = (
        UniqueConstraint("room_id", "question_id", name="uq_round_results_room_question"),
    )

    room_id: int = Field(foreign_key="room.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    winner_player_id: int = Field(foreign_key="player.id")
    winner_received_at: datetime = Field(default_factory=utc_now, nullable=False)
