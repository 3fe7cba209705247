import mimetypes
from typing import Callable

from trivia.core.config import settings
from trivia.utils.s3 import make_s3_public, presign_get_url


class MediaService:
    """
    URLs signées pour l'audio / les images des questions.
    Le blob store est externe : on ne fait que signer un GET, les octets ne passent pas par l'API.
    """

    BUCKETS = {
        "audio": "S3_AUDIO_BUCKET",
        "image": "S3_IMAGE_BUCKET",
    }

    def __init__(self, *, s3_client_public_factory: Callable[[], object] = make_s3_public):
        self._s3_public_factory = s3_client_public_factory
        self.settings = settings

    @staticmethod
    def clean_path(raw: str) -> str:
        """Pas de slash en tête, pas de remontée de dossier."""
        path = (raw or "").strip().lstrip("/")
        if not path or any(part == ".." for part in path.split("/")):
            raise ValueError("INVALID_MEDIA_PATH")
        return path

    def signed_get(self, kind: str, raw_path: str) -> dict:
        if kind not in self.BUCKETS:
            raise LookupError("UNKNOWN_MEDIA_KIND")
        key = self.clean_path(raw_path)
        bucket = getattr(self.settings, self.BUCKETS[kind])
        content_type, _ = mimetypes.guess_type(key)

        s3 = self._s3_public_factory()
        url = presign_get_url(
            s3,
            bucket=bucket,
            key=key,
            ttl=self.settings.PRESIGN_TTL_SECONDS,
            content_type=content_type,
        )
        return {"url": url, "expires_in": self.settings.PRESIGN_TTL_SECONDS}
