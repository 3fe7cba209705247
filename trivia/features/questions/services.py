import random
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from trivia.db.repositories.packs import PackRepository
from trivia.features.questions.bank import QuestionBank, QuestionRecord
from trivia.features.questions.schemas import PackOut, QuestionPublicOut, SampleIn
from trivia.features.questions.selection import (
    SelectionPolicy,
    SelectionStrategy,
    build_question_id_list,
)
from trivia.features.questions.shuffle import shuffle_mcq_for_room

MEDIA_PREFIX = "/api/v1/media"


def media_url(kind: str, path: Optional[str]) -> Optional[str]:
    """URL relative vers la redirection signée (le fichier ne transite pas par l'API)."""
    if not path:
        return None
    return f"{MEDIA_PREFIX}/{kind}?path={quote(path, safe='')}"


def to_public(record: QuestionRecord, *, room_id: Optional[int] = None) -> QuestionPublicOut:
    """
    Projection publique d'une question : jamais la bonne réponse.
    Avec room_id, les options d'un QCM sont dans l'ordre propre à la salle.
    """
    options: List[str] = []
    if record.answer_type == "mcq":
        options = list(record.options)
        if room_id is not None:
            options = shuffle_mcq_for_room(options, record.answer_index, room_id, record.id).options

    return QuestionPublicOut(
        id=record.id,
        round_type=record.round_type,
        answer_type=record.answer_type,
        text=record.text,
        options=options,
        audio_url=media_url("audio", record.audio_path),
        image_url=media_url("image", record.image_path),
    )


class QuestionService:
    """
    Service métier Questions (catalogue des packs, projections, tirages).
    """

    def __init__(self, bank: QuestionBank, pack_repo: PackRepository, rng: Optional[random.Random] = None):
        self.bank = bank
        self.packs = pack_repo
        self.rng = rng

    def list_packs(self) -> List[PackOut]:
        rows = self.packs.list_with_counts()
        packs = [PackOut(**dict(r._mapping)) for r in rows]
        # "general" toujours en premier, puis ordre alphabétique
        return sorted(packs, key=lambda p: (p.slug != "general", p.label.lower()))

    def get_public_by_ids(self, ids: Sequence[int]) -> List[QuestionPublicOut]:
        return [to_public(r) for r in self.bank.get_questions_by_ids(ids)]

    def sample(self, payload: SampleIn) -> List[int]:
        counts: Dict[int, Any] = {}
        for r in payload.rounds:
            counts[r.pack_id] = counts.get(r.pack_id, 0) + r.count

        rows = self.bank.list_questions_for_packs(list(counts))
        policy = SelectionPolicy(
            strategy=SelectionStrategy.PER_PACK,
            round_filter=payload.round_filter,
            per_pack_counts=counts,
        )
        return build_question_id_list(rows, policy, self.rng)
