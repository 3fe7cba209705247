from typing import Any, Optional, Sequence
from sqlmodel import select
from sqlalchemy import case, func

from trivia.db.repositories.base import BaseRepository
from trivia.db.models.packs import Pack, PackQuestion
from trivia.db.models.questions import Question


class PackRepository(BaseRepository[Pack]):
    """CRUD Packs + catalogue avec compteurs."""
    model = Pack

    def get_by_slug(self, slug: str) -> Optional[Pack]:
        stmt = select(Pack).where(Pack.slug == slug)
        return self.session.exec(stmt).first()

    def list_with_counts(self) -> Sequence[Any]:
        """
        Lignes plates (Pack + nb questions / audio / image).
        Le service trie et remappe.
        """
        stmt = (
            select(
                Pack.id,
                Pack.slug,
                Pack.label,
                Pack.round_type,
                Pack.description,
                func.count(func.distinct(PackQuestion.question_id)).label("question_count"),
                func.count(func.distinct(case((Question.round_type == "audio", Question.id)))).label("audio_count"),
                func.count(func.distinct(case((Question.round_type == "picture", Question.id)))).label("picture_count"),
            )
            .select_from(Pack)
            .join(PackQuestion, PackQuestion.pack_id == Pack.id, isouter=True)
            .join(Question, Question.id == PackQuestion.question_id, isouter=True)
            .group_by(Pack.id)
        )
        return self.session.exec(stmt).all()


class PackQuestionRepository(BaseRepository[PackQuestion]):
    model = PackQuestion

    def exists(self, pack_id: int, question_id: int) -> bool:
        stmt = select(PackQuestion.id).where(
            PackQuestion.pack_id == pack_id,
            PackQuestion.question_id == question_id,
        )
        return self.session.exec(stmt).first() is not None
