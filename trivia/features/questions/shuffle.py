"""
Ordre des options d'un QCM, propre à chaque salle.

Tous les écrans (téléphones + display) et la correction doivent voir le même ordre
sans qu'on le stocke : on le recalcule à partir d'une graine "{room_id}:{question_id}".
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Sequence, TypeVar

T = TypeVar("T")

_MASK_32 = 0xFFFFFFFF


@dataclass(frozen=True)
class ShuffleResult:
    options: List[str]
    answer_index: int


def hash_to_uint32(value: str) -> int:
    """FNV-1a 32 bits, sur les unités UTF-16 (même résultat que côté navigateur)."""
    h = 2166136261
    raw = value.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        h ^= raw[i] | (raw[i + 1] << 8)
        h = (h * 16777619) & _MASK_32
    return h


def mulberry32(seed: int) -> Callable[[], float]:
    """Générateur pseudo-aléatoire 32 bits, valeurs dans [0, 1)."""
    state = seed & _MASK_32

    def _next() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK_32
        t = state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK_32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK_32)) & _MASK_32
        return ((t ^ (t >> 14)) & _MASK_32) / 4294967296

    return _next


def seeded_shuffle(items: Sequence[T], seed: str) -> List[T]:
    rand = mulberry32(hash_to_uint32(seed))
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = int(rand() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out


def shuffle_mcq_for_room(options: Sequence[Any], answer_index: Any, room_id: Any, question_id: Any) -> ShuffleResult:
    safe_options = [str(o) for o in (options or [])]

    if (
        len(safe_options) < 2
        or not isinstance(answer_index, int)
        or isinstance(answer_index, bool)
        or not 0 <= answer_index < len(safe_options)
    ):
        # entrée dégénérée : on ne touche à rien
        return ShuffleResult(options=safe_options, answer_index=answer_index)

    permutation = seeded_shuffle(range(len(safe_options)), f"{room_id}:{question_id}")
    return ShuffleResult(
        options=[safe_options[i] for i in permutation],
        answer_index=permutation.index(answer_index),
    )
