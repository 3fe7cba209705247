from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from trivia.api.v1.dependencies import get_question_service
from trivia.features.questions.schemas import PackOut, QuestionsByIdsOut, SampleIn, SampleOut
from trivia.features.questions.selection import SelectionError
from trivia.features.questions.services import QuestionService


router = APIRouter(
    tags=["questions"],
)

@router.get(
    "/packs",
    summary="Lister les packs avec leurs compteurs (questions / audio / images)",
    response_model=List[PackOut],
)
def list_packs(
    svc: QuestionService = Depends(get_question_service),
):
    return svc.list_packs()

@router.get(
    "/questions/by-ids",
    summary="Projection publique de questions, dans l'ordre demandé",
    response_model=QuestionsByIdsOut,
)
def questions_by_ids(
    ids: str = Query(..., min_length=1, description="Ids séparés par des virgules", examples=["3,1,2"]),
    svc: QuestionService = Depends(get_question_service),
):
    try:
        parsed = [int(part) for part in ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ids must be integers")
    if not parsed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ids required")
    return QuestionsByIdsOut(questions=svc.get_public_by_ids(parsed))

@router.post(
    "/questions/sample",
    summary="Tirer des questions au hasard, pack par pack",
    response_model=SampleOut,
    responses={400: {"description": "Selection failed"}},
)
def sample_questions(
    payload: SampleIn,
    svc: QuestionService = Depends(get_question_service),
):
    try:
        return SampleOut(question_ids=svc.sample(payload))
    except SelectionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())
