from datetime import datetime
from sqlmodel import Field
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint

from trivia.db.models.base import BaseModelDB, utc_now

class Player(BaseModelDB, table=True):
    __table_args__ = (
        UniqueConstraint("room_id", "name_key", name="uq_players_room_name_key"),
    )

    room_id: int = Field(
        sa_column=Column(Integer, ForeignKey("room.id", ondelete="CASCADE"), nullable=False, index=True),
    )

    name: str = Field(nullable=False)
    # forme normalisée (casse / espaces) pour l'unicité par salle
    name_key: str = Field(nullable=False)
    score: int = Field(default=0, nullable=False)
    joined_at: datetime = Field(default_factory=utc_now, nullable=False)
