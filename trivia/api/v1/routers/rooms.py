from fastapi import APIRouter, Depends, HTTPException, Path, status

from trivia.api.v1.dependencies import get_room_service
from trivia.features.questions.evaluation import AnswerValidationError
from trivia.features.questions.selection import SelectionError
from trivia.features.rooms.schemas import (
    AdvanceOut,
    AnswerIn,
    AnswerOut,
    ForceCloseOut,
    JoinIn,
    JoinOut,
    ResetOut,
    RoomCreateIn,
    RoomCreateOut,
    RoomStateOut,
    StartOut,
)
from trivia.features.rooms.services import ConflictError, RoomService


router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
    responses={404: {"description": "Room not found"}},
)

# -------- Helpers --------

def _not_found(e: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e.args[0]) if e.args else "Not Found")

def _selection_failed(e: SelectionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())

# -----------------------------
# Create
# -----------------------------
@router.post(
    "",
    summary="Créer une salle (sélection des questions incluse)",
    status_code=status.HTTP_201_CREATED,
    response_model=RoomCreateOut,
    responses={400: {"description": "Selection failed"}, 409: {"description": "Code generation failed"}},
)
def create_room(
    payload: RoomCreateIn,
    svc: RoomService = Depends(get_room_service),
):
    try:
        room = svc.create_room(payload)
    except SelectionError as e:
        raise _selection_failed(e)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return RoomCreateOut(id=room.id, code=room.code, phase=room.phase, question_count=len(room.question_ids))

# -----------------------------
# Join
# -----------------------------
@router.post(
    "/{code}/join",
    summary="Rejoindre une salle (lobby uniquement)",
    status_code=status.HTTP_201_CREATED,
    response_model=JoinOut,
    responses={409: {"description": "NAME_TAKEN / ROOM_NOT_IN_LOBBY"}},
)
def join_room(
    payload: JoinIn,
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        player = svc.join_room(code, payload.name)
    except LookupError as e:
        raise _not_found(e)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": str(e), "message": "name must not be blank"})
    return JoinOut(player_id=player.id, code=code.strip().upper(), name=player.name)

# -----------------------------
# Transitions
# -----------------------------
@router.post("/{code}/start", summary="Lancer la partie", response_model=StartOut)
def start_room(
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        return svc.start_room(code)
    except LookupError as e:
        raise _not_found(e)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.post(
    "/{code}/advance",
    summary="Passer à la question suivante (sans effet si trop tôt)",
    response_model=AdvanceOut,
)
def advance_room(
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        return svc.advance_room(code)
    except LookupError as e:
        raise _not_found(e)

@router.post(
    "/{code}/force-close",
    summary="Fermer les réponses maintenant (sans effet hors stage open)",
    response_model=ForceCloseOut,
)
def force_close(
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        return svc.force_close(code)
    except LookupError as e:
        raise _not_found(e)

@router.post(
    "/{code}/reset",
    summary="Remettre la salle au lobby avec une nouvelle sélection",
    response_model=ResetOut,
    responses={400: {"description": "Selection failed"}},
)
def reset_room(
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        room = svc.reset_room(code)
    except LookupError as e:
        raise _not_found(e)
    except SelectionError as e:
        raise _selection_failed(e)
    return ResetOut(code=room.code, phase=room.phase, question_count=len(room.question_ids))

# -----------------------------
# Answer
# -----------------------------
@router.post(
    "/{code}/answers",
    summary="Envoyer la réponse d'une équipe",
    response_model=AnswerOut,
    responses={400: {"description": "MISSING_OPTION_INDEX / MISSING_ANSWER_TEXT / BAD_QUESTION"}},
)
def submit_answer(
    payload: AnswerIn,
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        return svc.record_answer(code, payload)
    except LookupError as e:
        raise _not_found(e)
    except AnswerValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": e.code, "message": e.message})

# -----------------------------
# State (polling)
# -----------------------------
@router.get("/{code}/state", summary="Etat courant de la salle", response_model=RoomStateOut)
def get_state(
    code: str = Path(..., min_length=3, max_length=16),
    svc: RoomService = Depends(get_room_service),
):
    try:
        return svc.get_state(code)
    except LookupError as e:
        raise _not_found(e)
