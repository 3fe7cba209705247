"""
Sélection aléatoire des questions d'une salle (création + reset).

Entrée : lignes (question_id, pack_id, round_type) des packs choisis + une politique.
Sortie : liste ordonnée d'ids, ou SelectionError typée (jamais de résultat partiel).
"""

import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set


class RoundFilter(str, Enum):
    MIXED = "mixed"
    NO_AUDIO = "no_audio"
    NO_IMAGE = "no_image"
    AUDIO_ONLY = "audio_only"
    PICTURE_ONLY = "picture_only"
    AUDIO_AND_IMAGE = "audio_and_image"


class SelectionStrategy(str, Enum):
    ALL_PACKS = "all_packs"
    PER_PACK = "per_pack"


class SelectionErrorKind(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    INSUFFICIENT_QUESTIONS = "INSUFFICIENT_QUESTIONS"
    INSUFFICIENT_QUESTIONS_PER_PACK = "INSUFFICIENT_QUESTIONS_PER_PACK"


class SelectionError(Exception):
    """Échec de sélection, avec de quoi construire un message précis côté client."""

    def __init__(self, kind: SelectionErrorKind, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class SelectionRow:
    question_id: int
    pack_id: int
    round_type: str


@dataclass
class SelectionPolicy:
    strategy: SelectionStrategy = SelectionStrategy.ALL_PACKS
    round_filter: RoundFilter = RoundFilter.MIXED
    total_questions: Optional[Any] = None
    per_pack_counts: Dict[int, Any] = field(default_factory=dict)


# round_filter -> prédicat sur round_type
_FILTERS = {
    RoundFilter.MIXED: lambda t: True,
    RoundFilter.NO_AUDIO: lambda t: t != "audio",
    RoundFilter.NO_IMAGE: lambda t: t != "picture",
    RoundFilter.AUDIO_ONLY: lambda t: t == "audio",
    RoundFilter.PICTURE_ONLY: lambda t: t == "picture",
    RoundFilter.AUDIO_AND_IMAGE: lambda t: t in ("audio", "picture"),
}


def apply_round_filter(rows: Sequence[SelectionRow], round_filter: RoundFilter) -> List[SelectionRow]:
    keep = _FILTERS[RoundFilter(round_filter)]
    return [r for r in rows if keep(r.round_type)]


def build_question_id_list(
    rows: Sequence[SelectionRow],
    policy: SelectionPolicy,
    rng: Optional[random.Random] = None,
) -> List[int]:
    rng = rng or random.SystemRandom()
    filtered = apply_round_filter(rows, policy.round_filter)

    if SelectionStrategy(policy.strategy) == SelectionStrategy.PER_PACK:
        return _build_per_pack(filtered, policy.per_pack_counts, rng)
    return _build_all_packs(filtered, policy.total_questions, rng)


def _build_all_packs(rows: List[SelectionRow], total_questions: Any, rng: random.Random) -> List[int]:
    total = _positive_int(total_questions, "total_questions")
    rows = _unique_questions(rows)

    if len(rows) < total:
        raise SelectionError(
            SelectionErrorKind.INSUFFICIENT_QUESTIONS,
            f"Not enough questions to satisfy total_questions. Requested {total}, available {len(rows)}",
            {"requested": total, "available": len(rows)},
        )

    # l'appartenance aux packs est ignorée ici : les packs ne sont que des sources
    return [r.question_id for r in rng.sample(rows, total)]


def _build_per_pack(rows: List[SelectionRow], per_pack_counts: Dict[int, Any], rng: random.Random) -> List[int]:
    # une question partagée par deux packs ne peut être tirée qu'une fois
    drawn: Set[int] = set()
    grouped: Dict[int, List[SelectionRow]] = {}
    for r in rows:
        grouped.setdefault(r.pack_id, []).append(r)

    out: List[int] = []
    requested_any = False

    for pack_id, raw_count in per_pack_counts.items():
        requested = _non_negative_int(raw_count)
        if requested == 0:
            continue
        requested_any = True

        candidates = [r for r in grouped.get(pack_id, []) if r.question_id not in drawn]
        if len(candidates) < requested:
            raise SelectionError(
                SelectionErrorKind.INSUFFICIENT_QUESTIONS_PER_PACK,
                f"Not enough questions for pack {pack_id}. Requested {requested}, available {len(candidates)}",
                {"pack_id": pack_id, "requested": requested, "available": len(candidates)},
            )
        picked = [r.question_id for r in rng.sample(candidates, requested)]
        drawn.update(picked)
        out.extend(picked)

    if not requested_any:
        raise SelectionError(
            SelectionErrorKind.INVALID_INPUT,
            "per_pack selection needs at least one pack with a positive count",
            {"per_pack_counts": {str(k): v for k, v in per_pack_counts.items()}},
        )

    rng.shuffle(out)
    return out


def _unique_questions(rows: Sequence[SelectionRow]) -> List[SelectionRow]:
    """Une ligne par question_id (la première rencontrée)."""
    seen: Set[int] = set()
    out: List[SelectionRow] = []
    for r in rows:
        if r.question_id not in seen:
            seen.add(r.question_id)
            out.append(r)
    return out


def _to_number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _positive_int(value: Any, field_name: str) -> int:
    n = _to_number(value)
    if not math.isfinite(n) or n <= 0 or math.floor(n) == 0:
        raise SelectionError(
            SelectionErrorKind.INVALID_INPUT,
            f"{field_name} must be a positive number",
            {field_name: value},
        )
    return int(math.floor(n))


def _non_negative_int(value: Any) -> int:
    n = _to_number(value)
    if not math.isfinite(n) or n < 0:
        return 0
    return int(math.floor(n))
