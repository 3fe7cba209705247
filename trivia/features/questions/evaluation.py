"""
Correction des réponses : QCM (index mélangé) et réponse libre (normalisation + tolérance).

Règles pour la réponse libre, testées contre la réponse attendue puis chaque alternative acceptée :
1. égalité après normalisation
2. initiales ("lm" pour "Les Misérables")
3. préfixes de mots dans l'ordre ("phan of the op" pour "The Phantom of the Opera")
4. distance d'édition bornée (fautes de frappe)
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence

from trivia.features.questions.shuffle import shuffle_mcq_for_room

STOP_WORDS = frozenset({"the", "a", "an", "and", "of", "to", "in", "for", "on", "at", "with", "from", "by"})

SIMILARITY_THRESHOLD = 0.82
PREFIX_COVERAGE_THRESHOLD = 0.6

_APOSTROPHES = re.compile(r"['’‘`]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_INITIALS_INPUT = re.compile(r"^[a-z0-9]{2,6}$")


class AnswerValidationError(ValueError):
    """Appel mal formé (pas une mauvaise réponse)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class EvaluableQuestion(Protocol):
    id: int
    answer_type: str
    options: Sequence[str]
    answer_index: Optional[int]
    answer_text: Optional[str]
    accepted_answers: Sequence[str]


@dataclass(frozen=True)
class Submission:
    option_index: Optional[int] = None
    answer_text: Optional[str] = None


# ---------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------

def normalize_answer(value: Optional[str]) -> str:
    s = unicodedata.normalize("NFKD", str(value or ""))
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = s.lower().replace("&", " and ")
    s = _APOSTROPHES.sub("", s)
    s = _NON_ALNUM.sub(" ", s).strip()
    # "the" en tête : les gens le tapent ou l'oublient
    if s.startswith("the "):
        s = s[4:]
    return s


def _tokens(normalized: str) -> List[str]:
    return [t for t in normalized.split(" ") if t]


# ---------------------------------------------------------------------
# Règles
# ---------------------------------------------------------------------

def initials_of(normalized: str) -> str:
    return "".join(t[0] for t in _tokens(normalized) if t not in STOP_WORDS)


def _matches_initials(user: str, expected: str) -> bool:
    compact = user.replace(" ", "")
    if not _INITIALS_INPUT.match(compact):
        return False
    initials = initials_of(expected)
    return len(initials) >= 2 and initials == compact


def _matches_token_prefixes(user: str, expected: str) -> bool:
    user_tokens = [t for t in _tokens(user) if len(t) >= 2]
    expected_tokens = _tokens(expected)
    if len(user_tokens) < 2 or len(expected_tokens) < 2:
        return False

    cursor = 0
    for token in user_tokens:
        while cursor < len(expected_tokens) and not expected_tokens[cursor].startswith(token):
            cursor += 1
        if cursor >= len(expected_tokens):
            return False
        cursor += 1

    matched = len(user_tokens)
    coverage = matched / len(expected_tokens)
    return coverage >= PREFIX_COVERAGE_THRESHOLD or matched >= 3


def max_edits_for(length: int) -> int:
    if length < 8:
        return 1
    if length < 13:
        return 2
    if length < 19:
        return 3
    return 4


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
        previous = current
    return previous[-1]


def _matches_edit_distance(user: str, expected: str) -> bool:
    max_len = max(len(user), len(expected))
    if max_len <= 4:
        return False
    distance = levenshtein(user, expected)
    similarity = 1 - distance / max_len
    return distance <= max_edits_for(max_len) and similarity >= SIMILARITY_THRESHOLD


def _matches_one(user: str, expected_raw: Optional[str]) -> bool:
    expected = normalize_answer(expected_raw)
    if not expected:
        return False
    return (
        user == expected
        or _matches_initials(user, expected)
        or _matches_token_prefixes(user, expected)
        or _matches_edit_distance(user, expected)
    )


def is_correct_typed_answer(user_input: str, correct: Optional[str], accepted: Optional[Iterable[str]] = None) -> bool:
    user = normalize_answer(user_input)
    if not user:
        return False

    candidates = [correct] + list(accepted or [])
    return any(_matches_one(user, c) for c in candidates)


# ---------------------------------------------------------------------
# Point d'entrée
# ---------------------------------------------------------------------

def evaluate_answer(question: EvaluableQuestion, submission: Submission, *, room_id: int) -> bool:
    if question.answer_type == "mcq":
        options = list(question.options or [])
        if len(options) < 2 or question.answer_index is None or not 0 <= question.answer_index < len(options):
            raise AnswerValidationError("BAD_QUESTION", f"Question {question.id} has no valid options/answer_index")
        if submission.option_index is None:
            raise AnswerValidationError("MISSING_OPTION_INDEX", "option_index is required for multiple-choice questions")

        shuffled = shuffle_mcq_for_room(options, question.answer_index, room_id, question.id)
        return submission.option_index == shuffled.answer_index

    if question.answer_type == "text":
        if not (question.answer_text or "").strip() and not question.accepted_answers:
            raise AnswerValidationError("BAD_QUESTION", f"Question {question.id} has no expected answer")
        if submission.answer_text is None or not submission.answer_text.strip():
            raise AnswerValidationError("MISSING_ANSWER_TEXT", "answer_text is required for free-text questions")

        return is_correct_typed_answer(submission.answer_text, question.answer_text, question.accepted_answers)

    raise AnswerValidationError("BAD_QUESTION", f"Unknown answer_type {question.answer_type!r}")
