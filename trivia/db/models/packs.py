from typing import Optional
from sqlmodel import Field
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint

from .base import BaseModelDB


class Pack(BaseModelDB, table=True):
    """Paquet de questions (général, audio, images...)."""

    slug: str = Field(index=True, unique=True, description="Identifiant lisible (ex: general)")
    label: str = Field(description="Nom affiché")
    round_type: str = Field(default="general", description="general | audio | picture")
    description: Optional[str] = Field(default=None)


class PackQuestion(BaseModelDB, table=True):
    __table_args__ = (
        UniqueConstraint("pack_id", "question_id", name="uq_pack_questions_pack_question"),
    )

    pack_id: int = Field(
        sa_column=Column(Integer, ForeignKey("pack.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    question_id: int = Field(
        sa_column=Column(Integer, ForeignKey("question.id", ondelete="CASCADE"), nullable=False, index=True),
    )
