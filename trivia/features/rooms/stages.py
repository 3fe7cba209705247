"""
Horloge d'une salle : le "stage" se déduit de l'heure courante et des timestamps stockés.
Aucun timer côté serveur ; tout est recalculé à la lecture.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional

# réponse "sans limite" quand answer_seconds <= 0
UNTIMED_SECONDS = 60 * 60 * 24 * 365

_EPOCH = datetime(1970, 1, 1)


class RoomPhase(str, Enum):
    LOBBY = "lobby"
    RUNNING = "running"
    FINISHED = "finished"


class Stage(str, Enum):
    COUNTDOWN = "countdown"
    OPEN = "open"
    WAIT = "wait"
    REVEAL = "reveal"
    NEEDS_ADVANCE = "needs_advance"


class AudioMode(str, Enum):
    DISPLAY = "display"
    PHONES = "phones"
    BOTH = "both"


@dataclass(frozen=True)
class Schedule:
    countdown_start_at: datetime
    open_at: datetime
    close_at: datetime
    reveal_at: datetime
    next_at: datetime

    def as_changes(self) -> Dict[str, datetime]:
        return {
            "countdown_start_at": self.countdown_start_at,
            "open_at": self.open_at,
            "close_at": self.close_at,
            "reveal_at": self.reveal_at,
            "next_at": self.next_at,
        }


def _seconds(value: Optional[int]) -> int:
    return int(value or 0)


def effective_answer_seconds(answer_seconds: Optional[int]) -> int:
    seconds = _seconds(answer_seconds)
    return seconds if seconds > 0 else UNTIMED_SECONDS


def schedule_question(
    now: datetime,
    *,
    countdown_seconds: Optional[int],
    answer_seconds: Optional[int],
    reveal_delay_seconds: Optional[int],
    reveal_seconds: Optional[int],
) -> Schedule:
    open_at = now + timedelta(seconds=_seconds(countdown_seconds))
    close_at = open_at + timedelta(seconds=effective_answer_seconds(answer_seconds))
    reveal_at = close_at + timedelta(seconds=_seconds(reveal_delay_seconds))
    next_at = reveal_at + timedelta(seconds=_seconds(reveal_seconds))
    return Schedule(
        countdown_start_at=now,
        open_at=open_at,
        close_at=close_at,
        reveal_at=reveal_at,
        next_at=next_at,
    )


def schedule_close(
    now: datetime,
    *,
    reveal_delay_seconds: Optional[int],
    reveal_seconds: Optional[int],
) -> Dict[str, datetime]:
    """Fermeture anticipée : close_at = now, puis reveal/next recalés sur now."""
    reveal_at = now + timedelta(seconds=_seconds(reveal_delay_seconds))
    next_at = reveal_at + timedelta(seconds=_seconds(reveal_seconds))
    return {"close_at": now, "reveal_at": reveal_at, "next_at": next_at}


def stage_from_times(
    now: datetime,
    open_at: Optional[datetime],
    close_at: Optional[datetime],
    reveal_at: Optional[datetime],
    next_at: Optional[datetime],
) -> Stage:
    # un timestamp absent vaut l'epoch : la salle est alors "à avancer"
    if now < (open_at or _EPOCH):
        return Stage.COUNTDOWN
    if now < (close_at or _EPOCH):
        return Stage.OPEN
    if now < (reveal_at or _EPOCH):
        return Stage.WAIT
    if now < (next_at or _EPOCH):
        return Stage.REVEAL
    return Stage.NEEDS_ADVANCE


def compute_stage(room, now: datetime) -> str:
    """Stage d'une salle en cours ; pour lobby/finished on renvoie la phase."""
    if room.phase != RoomPhase.RUNNING.value:
        return room.phase
    return stage_from_times(now, room.open_at, room.close_at, room.reveal_at, room.next_at).value
