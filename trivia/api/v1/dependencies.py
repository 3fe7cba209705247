"""
➡️ But : Centraliser les dépendances réutilisables des routes.

Exemples :

get_room_service() : crée un RoomService à partir d’une session DB.

require_admin() : vérifie le secret admin partagé.

🔹 Avantages :

Routes plus propres (pas de code dupliqué).

Facile à surcharger dans les tests (app.dependency_overrides).
"""

import logging
import random
import secrets
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from trivia.core.config import settings
from trivia.db.models.base import utc_now
from trivia.db.session import get_session

from trivia.db.repositories.questions import QuestionRepository
from trivia.db.repositories.packs import PackRepository
from trivia.db.repositories.rooms import RoomRepository
from trivia.db.repositories.players import PlayerRepository
from trivia.db.repositories.answers import AnswerRepository
from trivia.db.repositories.round_results import RoundResultRepository

from trivia.features.questions.bank import QuestionBank, QuestionRecord, question_cache
from trivia.features.questions.cache import TTLCache
from trivia.features.questions.services import QuestionService
from trivia.features.rooms.services import RoomService
from trivia.features.media.services import MediaService

logger = logging.getLogger(__name__)


# -----------------------------
# Horloge / hasard (surchargés dans les tests)
# -----------------------------
def get_clock() -> Callable[[], datetime]:
    return utc_now

def get_rng() -> Optional[random.Random]:
    return random.SystemRandom()


# -----------------------------
# Repositories
# -----------------------------
def get_question_repository(session: Session = Depends(get_session)) -> QuestionRepository:
    return QuestionRepository(session)

def get_pack_repository(session: Session = Depends(get_session)) -> PackRepository:
    return PackRepository(session)

def get_room_repository(session: Session = Depends(get_session)) -> RoomRepository:
    return RoomRepository(session)

def get_player_repository(session: Session = Depends(get_session)) -> PlayerRepository:
    return PlayerRepository(session)

def get_answer_repository(session: Session = Depends(get_session)) -> AnswerRepository:
    return AnswerRepository(session)

def get_round_result_repository(session: Session = Depends(get_session)) -> RoundResultRepository:
    return RoundResultRepository(session)


# -----------------------------
# Banque de questions
# -----------------------------
def get_question_cache() -> TTLCache[QuestionRecord]:
    return question_cache

def get_question_bank(
    question_repo: QuestionRepository = Depends(get_question_repository),
    cache: TTLCache[QuestionRecord] = Depends(get_question_cache),
) -> QuestionBank:
    return QuestionBank(repo=question_repo, cache=cache)

def get_question_service(
    bank: QuestionBank = Depends(get_question_bank),
    pack_repo: PackRepository = Depends(get_pack_repository),
    rng: Optional[random.Random] = Depends(get_rng),
) -> QuestionService:
    return QuestionService(bank=bank, pack_repo=pack_repo, rng=rng)


# -----------------------------
# Room service
# -----------------------------
def get_room_service(
    session: Session = Depends(get_session),
    room_repo: RoomRepository = Depends(get_room_repository),
    player_repo: PlayerRepository = Depends(get_player_repository),
    answer_repo: AnswerRepository = Depends(get_answer_repository),
    round_result_repo: RoundResultRepository = Depends(get_round_result_repository),
    bank: QuestionBank = Depends(get_question_bank),
    clock: Callable[[], datetime] = Depends(get_clock),
    rng: Optional[random.Random] = Depends(get_rng),
) -> RoomService:
    """
    Fournit une instance de RoomService avec tous ses repositories injectés.
    - aucune logique dans la route
    - dépendances résolues par FastAPI
    """
    return RoomService(
        session=session,
        room_repo=room_repo,
        player_repo=player_repo,
        answer_repo=answer_repo,
        round_result_repo=round_result_repo,
        question_bank=bank,
        clock=clock,
        rng=rng,
    )


# -----------------------------
# Media
# -----------------------------
def get_media_service() -> MediaService:
    return MediaService()


# -----------------------------
# Admin (secret statique partagé)
# -----------------------------
def require_admin(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
    expected = settings.ADMIN_TOKEN
    if not expected:
        # pas de secret configuré : on refuse plutôt que d'ouvrir les routes admin
        logger.warning("ADMIN_TOKEN not set - admin endpoints disabled")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin token not configured")
    if not x_admin_token or not secrets.compare_digest(x_admin_token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")
