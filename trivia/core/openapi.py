"""
➡️ But : Personnaliser la documentation Swagger/OpenAPI.

custom_openapi(app) modifie le schéma généré par FastAPI pour :

ajouter une description détaillée du protocole de polling,

centraliser la personnalisation du Swagger.
"""

from fastapi.openapi.utils import get_openapi

def custom_openapi(app):
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=(
            "API de quiz en direct : salles, équipes, questions chronométrées.\n\n"
            "### Conventions\n"
            "- Toutes les heures sont en UTC (ISO-8601).\n"
            "- Les clients interrogent `GET /rooms/{code}/state` en boucle (polling).\n"
            "- Quand `stage = needs_advance`, n'importe quel client appelle `POST /rooms/{code}/advance`.\n"
            "- Les refus attendus (`already_answered`, `not_open`...) sont des réponses 200 avec `accepted=false`.\n"
            "- Routes admin : header `X-Admin-Token`.\n"
        ),
        routes=app.routes,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema
