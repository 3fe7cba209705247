from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from trivia.db.models.questions import Question
from trivia.db.repositories.questions import QuestionRepository
from trivia.features.questions.cache import TTLCache
from trivia.features.questions.selection import SelectionRow


@dataclass(frozen=True)
class QuestionRecord:
    """Copie figée d'une question : sûre à garder en cache entre sessions."""

    id: int
    round_type: str
    answer_type: str
    text: str
    options: Tuple[str, ...] = ()
    answer_index: Optional[int] = None
    answer_text: Optional[str] = None
    accepted_answers: Tuple[str, ...] = field(default_factory=tuple)
    explanation: str = ""
    audio_path: Optional[str] = None
    image_path: Optional[str] = None

    @classmethod
    def from_model(cls, q: Question) -> "QuestionRecord":
        return cls(
            id=q.id,
            round_type=q.round_type,
            answer_type=q.answer_type,
            text=q.text,
            options=tuple(q.options or ()),
            answer_index=q.answer_index,
            answer_text=q.answer_text,
            accepted_answers=tuple(q.accepted_answers or ()),
            explanation=q.explanation or "",
            audio_path=q.audio_path,
            image_path=q.image_path,
        )


class QuestionBank:
    """
    Accès à la banque de questions pour le moteur de salle.
    Les lectures par id passent par un cache TTL (les questions ne changent pas pendant une partie).
    """

    def __init__(self, repo: QuestionRepository, cache: TTLCache[QuestionRecord]):
        self.repo = repo
        self.cache = cache

    def get_question_by_id(self, question_id: int) -> Optional[QuestionRecord]:
        cached, hit = self.cache.get(question_id)
        if hit:
            return cached

        q = self.repo.get(question_id)
        if not q:
            return None
        record = QuestionRecord.from_model(q)
        self.cache.set(question_id, record)
        return record

    def get_questions_by_ids(self, ids: Sequence[int]) -> List[QuestionRecord]:
        """Conserve l'ordre demandé ; les ids inconnus sont ignorés."""
        found: Dict[int, QuestionRecord] = {}
        missing: List[int] = []
        for qid in ids:
            cached, hit = self.cache.get(qid)
            if hit:
                found[qid] = cached
            else:
                missing.append(qid)

        for q in self.repo.list_by_ids(missing):
            record = QuestionRecord.from_model(q)
            self.cache.set(q.id, record)
            found[q.id] = record

        return [found[qid] for qid in ids if qid in found]

    def list_questions_for_packs(self, pack_ids: Sequence[int]) -> List[SelectionRow]:
        rows = self.repo.list_selection_rows(pack_ids)
        return [
            SelectionRow(question_id=r.question_id, pack_id=r.pack_id, round_type=r.round_type or "general")
            for r in rows
        ]


def _default_cache() -> TTLCache[QuestionRecord]:
    from trivia.core.config import settings
    return TTLCache(settings.QUESTION_CACHE_TTL_SECONDS, maxsize=settings.QUESTION_CACHE_MAXSIZE)


# Cache partagé par le process (une instance par worker)
question_cache: TTLCache[QuestionRecord] = _default_cache()
