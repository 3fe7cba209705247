from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlmodel import Field
from sqlalchemy import Column, JSON

from trivia.db.models.base import BaseModelDB


class Room(BaseModelDB, table=True):
    """
    Salle de jeu. Créée une fois par partie, réinitialisable via reset.
    Le "stage" (countdown/open/wait/reveal) n'est jamais stocké : il se calcule depuis les timestamps.
    """

    # code court utilisé pour rejoindre (toujours en majuscules)
    code: str = Field(index=True, nullable=False, unique=True)
    phase: str = Field(default="lobby", nullable=False)  # lobby | running | finished

    # ordre de jeu figé à la création / au reset
    question_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    question_index: int = Field(default=0, nullable=False)

    # durées (secondes)
    countdown_seconds: int = Field(default=3, nullable=False)
    answer_seconds: int = Field(default=12, nullable=False)
    reveal_delay_seconds: int = Field(default=2, nullable=False)
    reveal_seconds: int = Field(default=5, nullable=False)

    # planning de la question courante
    countdown_start_at: Optional[datetime] = Field(default=None)
    open_at: Optional[datetime] = Field(default=None)
    close_at: Optional[datetime] = Field(default=None)
    reveal_at: Optional[datetime] = Field(default=None)
    next_at: Optional[datetime] = Field(default=None)

    audio_mode: str = Field(default="display", nullable=False)  # display | phones | both

    # politique de sélection (rejouée par reset)
    selected_packs: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    rounds: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    selection_strategy: str = Field(default="all_packs", nullable=False)
    round_filter: str = Field(default="mixed", nullable=False)
    total_questions: Optional[int] = Field(default=None)
