from typing import List, Optional
from sqlmodel import Field
from sqlalchemy import Column, JSON

from .base import BaseModelDB


class Question(BaseModelDB, table=True):
    """
    Question de la banque.
    - round_type : general | audio | picture (modalité)
    - answer_type : mcq | text (façon de répondre)
    Immuable pendant la vie d'une salle.
    """

    round_type: str = Field(default="general", index=True, description="general | audio | picture")
    answer_type: str = Field(default="mcq", description="mcq | text")

    text: str = Field(description="Intitulé de la question")

    # QCM : exactement 4 options + index de la bonne réponse
    options: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    answer_index: Optional[int] = Field(default=None, ge=0, le=3)

    # Réponse libre : réponse attendue + alternatives acceptées
    answer_text: Optional[str] = Field(default=None)
    accepted_answers: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    explanation: str = Field(default="")

    # Médias optionnels (clés dans le blob store)
    audio_path: Optional[str] = Field(default=None)
    image_path: Optional[str] = Field(default=None)
