"""
➡️ But : Centraliser tous les paramètres configurables (nom d’app, chemin DB, secret admin, timings, S3...)

Utilise pydantic-settings pour charger automatiquement les variables d’environnement (.env, variables système…).

Fournit un objet settings unique, que tu importes ailleurs :

from trivia.core.config import settings
print(settings.APP_NAME)
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # -----------------------------
    # App
    # -----------------------------
    APP_NAME: str = "Trivia-Rooms"
    ENV: str = "dev"  # dev | prod | test
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    SQLITE_PATH: str = "trivia.db"  # fichier SQLite
    # Si tu veux forcer une URL différente (ex: Postgres), définis DATABASE_URL dans l'env.
    DATABASE_URL: Optional[str] = None

    # -----------------------------
    # Admin (secret statique partagé)
    # -----------------------------
    ADMIN_TOKEN: str = ""  # header X-Admin-Token

    # -----------------------------
    # Rooms
    # -----------------------------
    ROOM_CODE_ALPHABET: str = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
    ROOM_CODE_LENGTH: int = 8
    ROOM_CODE_ATTEMPTS: int = 8

    DEFAULT_TOTAL_QUESTIONS: int = 20
    DEFAULT_COUNTDOWN_SECONDS: int = 3
    DEFAULT_ANSWER_SECONDS: int = 12
    DEFAULT_REVEAL_DELAY_SECONDS: int = 2
    DEFAULT_REVEAL_SECONDS: int = 5

    # -----------------------------
    # Banque de questions
    # -----------------------------
    QUESTION_CACHE_TTL_SECONDS: float = 60.0
    QUESTION_CACHE_MAXSIZE: int = 2048

    # -----------------------------
    # S3 / MinIO (audio + images des questions)
    # -----------------------------
    S3_ENDPOINT: str = "http://localhost:9000"
    MINIO_PUBLIC_ENDPOINT: Optional[str] = None
    S3_REGION: str = "us-east-1"
    S3_KEY: str = "minioadmin"
    S3_SECRET: str = "minioadmin"
    S3_AUDIO_BUCKET: str = "audio"
    S3_IMAGE_BUCKET: str = "images"
    PRESIGN_TTL_SECONDS: int = 60 * 60

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    # -----------------------------
    # Post-process values
    # -----------------------------
    def model_post_init(self, __context): # appelée automatiquement
        # DATABASE_URL par défaut depuis SQLITE_PATH si non fourni
        if not self.DATABASE_URL:
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{self.SQLITE_PATH}")

        # endpoint public = endpoint interne si non spécifié
        if not self.MINIO_PUBLIC_ENDPOINT:
            object.__setattr__(self, "MINIO_PUBLIC_ENDPOINT", self.S3_ENDPOINT)


# Instance globale importable partout
settings = Settings()
