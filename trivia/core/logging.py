import logging

from trivia.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure le logging racine une seule fois (appelé au démarrage de l'app)."""
    resolved = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    # uvicorn garde ses propres handlers, on aligne juste le niveau
    logging.getLogger("uvicorn").setLevel(resolved)
    # les requêtes SQL passent déjà par echo=True en dev
    logging.getLogger("sqlalchemy.engine").propagate = False
