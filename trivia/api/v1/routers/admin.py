from fastapi import APIRouter, Depends

from trivia.api.v1.dependencies import (
    get_pack_repository,
    get_question_cache,
    get_question_repository,
    get_room_repository,
    require_admin,
)
from trivia.db.repositories.packs import PackRepository
from trivia.db.repositories.questions import QuestionRepository
from trivia.db.repositories.rooms import RoomRepository
from trivia.features.questions.bank import QuestionRecord
from trivia.features.questions.cache import TTLCache
from trivia.features.questions.schemas import HealthOut


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"description": "Invalid admin token"}},
)

@router.get("/ping", summary="Vérifier le secret admin")
def ping():
    return {"ok": True}

@router.get("/health", summary="Compteurs de la base", response_model=HealthOut)
def health(
    question_repo: QuestionRepository = Depends(get_question_repository),
    pack_repo: PackRepository = Depends(get_pack_repository),
    room_repo: RoomRepository = Depends(get_room_repository),
    cache: TTLCache[QuestionRecord] = Depends(get_question_cache),
):
    return HealthOut(
        packs=pack_repo.count(),
        questions=question_repo.count(),
        questions_by_round_type=question_repo.count_by_round_type(),
        rooms=room_repo.count(),
        cached_questions=len(cache),
    )

@router.post("/cache/clear", summary="Vider le cache des questions (après un import)")
def clear_cache(
    cache: TTLCache[QuestionRecord] = Depends(get_question_cache),
):
    return {"cleared": cache.clear()}
