from typing import Any, Sequence
from sqlmodel import select
from sqlalchemy import func

from trivia.db.repositories.base import BaseRepository
from trivia.db.models.questions import Question
from trivia.db.models.packs import PackQuestion


class QuestionRepository(BaseRepository[Question]):
    """CRUD Questions + requêtes spécifiques."""
    model = Question

    def list_by_ids(self, ids: Sequence[int]) -> Sequence[Question]:
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(list(ids)))
        return self.session.exec(stmt).all()

    def list_selection_rows(self, pack_ids: Sequence[int]) -> Sequence[Any]:
        """
        Lignes plates (question_id, pack_id, round_type) pour la sélection.
        DISTINCT : un lien pack/question en double ne doit pas compter deux fois.
        """
        if not pack_ids:
            return []
        stmt = (
            select(
                PackQuestion.question_id.label("question_id"),
                PackQuestion.pack_id.label("pack_id"),
                Question.round_type.label("round_type"),
            )
            .join(Question, Question.id == PackQuestion.question_id)
            .where(PackQuestion.pack_id.in_(list(pack_ids)))
            .distinct()
            .order_by(PackQuestion.pack_id.asc(), PackQuestion.question_id.asc())
        )
        return self.session.exec(stmt).all()

    def count_by_round_type(self) -> dict:
        stmt = select(Question.round_type, func.count(Question.id)).group_by(Question.round_type)
        return {row[0]: int(row[1]) for row in self.session.exec(stmt).all()}
