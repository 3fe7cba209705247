"""
➡️ But : assembler le serveur de salles de quiz.

Crée l’instance FastAPI (app) et configure :

CORS, titre, version, tags

schéma OpenAPI personnalisé

Inclut les routers (/api/v1/rooms, /api/v1/packs, /api/v1/media, /api/v1/admin).

Initialise la base au démarrage.

Point unique d’exécution : uvicorn trivia.main:app --reload.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from trivia.core.config import settings
from trivia.core.logging import setup_logging
from trivia.core.openapi import custom_openapi
from trivia.db.session import init_db

from trivia.api.v1.routers import rooms, questions, media, admin

import uvicorn

setup_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    openapi_tags=[
        {"name": "rooms", "description": "Cycle de vie des salles : création, lobby, questions, réponses, état"},
        {"name": "questions", "description": "Packs et tirage de questions"},
        {"name": "media", "description": "Redirections signées vers l'audio et les images"},
        {"name": "admin", "description": "Opérations protégées par le secret admin"},
    ],
)

# CORS (ajustez selon vos besoins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

# Routers
app.include_router(rooms.router, prefix="/api/v1")
app.include_router(questions.router, prefix="/api/v1")
app.include_router(media.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")

app.openapi = lambda: custom_openapi(app)

# Démarrage
@app.on_event("startup")
def on_startup():
    init_db()

if __name__ == "__main__":
    uvicorn.run("trivia.main:app", host="127.0.0.1", port=8080, reload=(settings.ENV == "dev")) # http://localhost:8080
