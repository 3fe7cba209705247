from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from trivia.api.v1.dependencies import get_media_service
from trivia.features.media.services import MediaService


router = APIRouter(
    prefix="/media",
    tags=["media"],
)

def _redirect_signed(kind: str, path: str, svc: MediaService) -> RedirectResponse:
    try:
        data = svc.signed_get(kind, path)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    # redirection : le fichier ne transite pas par l'API
    return RedirectResponse(
        url=data["url"],
        status_code=status.HTTP_302_FOUND,
        headers={"Cache-Control": "private, max-age=300"},
    )

@router.get("/audio", summary="Redirige vers l'audio signé d'une question")
def get_audio(
    path: str = Query(..., min_length=1, max_length=512),
    svc: MediaService = Depends(get_media_service),
):
    return _redirect_signed("audio", path, svc)

@router.get("/image", summary="Redirige vers l'image signée d'une question")
def get_image(
    path: str = Query(..., min_length=1, max_length=512),
    svc: MediaService = Depends(get_media_service),
):
    return _redirect_signed("image", path, svc)
