import logging
import random
import secrets
import unicodedata
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from trivia.core.config import settings
from trivia.db.models.base import utc_now
from trivia.db.models.players import Player
from trivia.db.models.rooms import Room
from trivia.db.repositories.answers import AnswerRepository
from trivia.db.repositories.players import PlayerRepository
from trivia.db.repositories.rooms import RoomRepository
from trivia.db.repositories.round_results import RoundResultRepository
from trivia.features.questions.bank import QuestionBank
from trivia.features.questions.evaluation import Submission, evaluate_answer
from trivia.features.questions.selection import (
    RoundFilter,
    SelectionPolicy,
    SelectionStrategy,
    build_question_id_list,
)
from trivia.features.questions.services import to_public
from trivia.features.questions.shuffle import shuffle_mcq_for_room
from trivia.features.rooms.schemas import (
    AdvanceOut,
    AnswerIn,
    AnswerOut,
    ForceCloseOut,
    PlayerOut,
    RevealOut,
    RoomCreateIn,
    RoomStateOut,
    StartOut,
    TimesOut,
    WinnerOut,
)
from trivia.features.rooms.stages import (
    RoomPhase,
    Stage,
    compute_stage,
    schedule_close,
    schedule_question,
)

logger = logging.getLogger(__name__)


class ConflictError(Exception):
    """Conflit métier (nom déjà pris, salle déjà lancée, code introuvable après N essais...)."""
    pass


def normalize_player_name(name: str) -> str:
    """Clé d'unicité d'un nom d'équipe : insensible à la casse, aux accents et aux espaces multiples."""
    s = unicodedata.normalize("NFKD", name)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return " ".join(s.split()).casefold()


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # stocké en UTC naïf, renvoyé en UTC explicite
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class RoomService:
    """
    Moteur de salle : cycle lobby -> running -> finished.

    - aucune tâche de fond : le stage est recalculé à chaque lecture
    - chaque écriture est conditionnée par la ligne lue (UPDATE ... WHERE),
      plusieurs clients peuvent donc appeler advance/force-close en même temps
    - la contrainte d'unicité sur Answer empêche le double score
    """

    def __init__(
        self,
        session: Session,
        room_repo: RoomRepository,
        player_repo: PlayerRepository,
        answer_repo: AnswerRepository,
        round_result_repo: RoundResultRepository,
        question_bank: QuestionBank,
        *,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
        code_factory: Optional[Callable[[], str]] = None,
    ):
        self.session = session

        self.rooms = room_repo
        self.players = player_repo
        self.answers = answer_repo
        self.round_results = round_result_repo
        self.bank = question_bank

        self.clock = clock
        self.rng = rng
        self._code_factory = code_factory or self._generate_room_code

    # -----------------------------------
    # Helpers
    # -----------------------------------
    def _get_room_or_404(self, code: str) -> Room:
        room = self.rooms.get_by_code(code)
        if not room:
            raise LookupError("ROOM_NOT_FOUND")
        return room

    def _generate_room_code(self) -> str:
        """Code court lisible (sans 0/O/1/I), ex: K7P2XQ9D."""
        alphabet = settings.ROOM_CODE_ALPHABET
        return "".join(secrets.choice(alphabet) for _ in range(settings.ROOM_CODE_LENGTH))

    @staticmethod
    def _pack_ids(selected_packs: List[int], rounds: List[Dict[str, Any]]) -> List[int]:
        ordered: Dict[int, None] = {}
        for pid in list(selected_packs or []) + [r.get("pack_id") for r in (rounds or [])]:
            if pid is not None:
                ordered[int(pid)] = None
        return list(ordered)

    @staticmethod
    def _per_pack_counts(rounds: List[Dict[str, Any]]) -> Dict[int, Any]:
        counts: Dict[int, Any] = {}
        for r in rounds or []:
            pid = r.get("pack_id")
            if pid is None:
                continue
            counts[int(pid)] = counts.get(int(pid), 0) + int(r.get("count") or 0)
        return counts

    def _select_question_ids(
        self,
        *,
        selected_packs: List[int],
        rounds: List[Dict[str, Any]],
        strategy: str,
        round_filter: str,
        total_questions: Optional[int],
    ) -> List[int]:
        policy = SelectionPolicy(
            strategy=SelectionStrategy(strategy),
            round_filter=RoundFilter(round_filter),
            total_questions=total_questions,
            per_pack_counts=self._per_pack_counts(rounds),
        )
        rows = self.bank.list_questions_for_packs(self._pack_ids(selected_packs, rounds))
        return build_question_id_list(rows, policy, self.rng)

    def _schedule_changes(self, room: Room, now: datetime) -> Dict[str, Any]:
        schedule = schedule_question(
            now,
            countdown_seconds=room.countdown_seconds,
            answer_seconds=room.answer_seconds,
            reveal_delay_seconds=room.reveal_delay_seconds,
            reveal_seconds=room.reveal_seconds,
        )
        return {**schedule.as_changes(), "updated_at": now}

    @staticmethod
    def _current_question_id(room: Room) -> Optional[int]:
        ids = room.question_ids or []
        if 0 <= room.question_index < len(ids):
            return int(ids[room.question_index])
        return None

    # ---------------------------------------------------------------------
    # Create
    # ---------------------------------------------------------------------

    def create_room(self, payload: RoomCreateIn) -> Room:
        total = payload.total_questions
        if total is None and payload.selection_strategy == SelectionStrategy.ALL_PACKS:
            total = settings.DEFAULT_TOTAL_QUESTIONS

        rounds = [r.model_dump() for r in payload.rounds]
        question_ids = self._select_question_ids(
            selected_packs=payload.selected_packs,
            rounds=rounds,
            strategy=payload.selection_strategy.value,
            round_filter=payload.round_filter.value,
            total_questions=total,
        )

        fields = dict(
            phase=RoomPhase.LOBBY.value,
            question_ids=question_ids,
            question_index=0,
            countdown_seconds=self._or_default(payload.countdown_seconds, settings.DEFAULT_COUNTDOWN_SECONDS),
            answer_seconds=self._or_default(payload.answer_seconds, settings.DEFAULT_ANSWER_SECONDS),
            reveal_delay_seconds=self._or_default(payload.reveal_delay_seconds, settings.DEFAULT_REVEAL_DELAY_SECONDS),
            reveal_seconds=self._or_default(payload.reveal_seconds, settings.DEFAULT_REVEAL_SECONDS),
            audio_mode=payload.audio_mode.value,
            selected_packs=list(payload.selected_packs),
            rounds=rounds,
            selection_strategy=payload.selection_strategy.value,
            round_filter=payload.round_filter.value,
            total_questions=total,
        )

        # insert avec code unique : on retente sur collision (contrainte UNIQUE)
        for attempt in range(settings.ROOM_CODE_ATTEMPTS):
            code = self._code_factory().upper()
            try:
                room = self.rooms.create(commit=True, code=code, **fields)
            except IntegrityError:
                self.session.rollback()
                logger.debug("Room code collision on %s (attempt %d)", code, attempt + 1)
                continue
            logger.info("Room %s created with %d questions", room.code, len(question_ids))
            return room

        raise ConflictError("ROOM_CODE_GENERATION_FAILED")

    @staticmethod
    def _or_default(value: Optional[int], default: int) -> int:
        return default if value is None else value

    # ---------------------------------------------------------------------
    # Join
    # ---------------------------------------------------------------------

    def join_room(self, code: str, name: str) -> Player:
        room = self._get_room_or_404(code)
        if room.phase != RoomPhase.LOBBY.value:
            raise ConflictError("ROOM_NOT_IN_LOBBY")

        clean_name = " ".join(name.split())
        if not clean_name:
            raise ValueError("MISSING_NAME")

        try:
            player = self.players.create(
                commit=True,
                room_id=room.id,
                name=clean_name,
                name_key=normalize_player_name(clean_name),
                joined_at=self.clock(),
            )
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("NAME_TAKEN")

        logger.info("Player %r joined room %s", player.name, room.code)
        return player

    # ---------------------------------------------------------------------
    # Start / advance / force close
    # ---------------------------------------------------------------------

    def start_room(self, code: str) -> StartOut:
        room = self._get_room_or_404(code)
        if room.phase != RoomPhase.LOBBY.value:
            return StartOut(started=False, reason=f"already_{room.phase}")
        if not room.question_ids:
            raise ConflictError("ROOM_HAS_NO_QUESTIONS")

        now = self.clock()
        started = self.rooms.update_if(
            room.id,
            expected={"phase": RoomPhase.LOBBY.value},
            changes={"phase": RoomPhase.RUNNING.value, "question_index": 0, **self._schedule_changes(room, now)},
        )
        if started:
            logger.info("Room %s started", code)
            return StartOut(started=True)
        return StartOut(started=False, reason="already_started")

    def advance_room(self, code: str) -> AdvanceOut:
        room = self._get_room_or_404(code)
        now = self.clock()

        if room.phase != RoomPhase.RUNNING.value:
            return AdvanceOut(advanced=False, finished=room.phase == RoomPhase.FINISHED.value)
        if room.next_at is not None and now < room.next_at:
            return AdvanceOut(advanced=False, question_index=room.question_index)

        # la ligne telle que lue : un seul des appels concurrents passera
        expected = {
            "phase": RoomPhase.RUNNING.value,
            "question_index": room.question_index,
            "next_at": room.next_at,
        }
        next_index = room.question_index + 1

        if next_index >= len(room.question_ids or []):
            finished = self.rooms.update_if(
                room.id,
                expected=expected,
                changes={"phase": RoomPhase.FINISHED.value, "updated_at": now},
            )
            if finished:
                logger.info("Room %s finished", code)
            return AdvanceOut(advanced=finished, finished=finished, question_index=room.question_index)

        advanced = self.rooms.update_if(
            room.id,
            expected=expected,
            changes={"question_index": next_index, **self._schedule_changes(room, now)},
        )
        if not advanced:
            logger.debug("Room %s advance lost the race", code)
            return AdvanceOut(advanced=False)

        logger.info("Room %s advanced to question %d", code, next_index)
        return AdvanceOut(advanced=True, finished=False, question_index=next_index)

    def _close_answers(self, room: Room, now: datetime) -> bool:
        changes = schedule_close(
            now,
            reveal_delay_seconds=room.reveal_delay_seconds,
            reveal_seconds=room.reveal_seconds,
        )
        return self.rooms.update_if(
            room.id,
            expected={
                "phase": RoomPhase.RUNNING.value,
                "question_index": room.question_index,
                "close_at": room.close_at,
            },
            changes={**changes, "updated_at": now},
        )

    def force_close(self, code: str) -> ForceCloseOut:
        room = self._get_room_or_404(code)
        if room.phase != RoomPhase.RUNNING.value:
            return ForceCloseOut(forced=False, reason="not_running")

        now = self.clock()
        stage = compute_stage(room, now)
        if stage != Stage.OPEN.value:
            return ForceCloseOut(forced=False, reason="not_open", stage=stage)

        if not self._close_answers(room, now):
            return ForceCloseOut(forced=False, reason="not_open")

        logger.info("Room %s answers closed early", code)
        return ForceCloseOut(forced=True, stage=Stage.WAIT.value)

    # ---------------------------------------------------------------------
    # Answer
    # ---------------------------------------------------------------------

    def record_answer(self, code: str, payload: AnswerIn) -> AnswerOut:
        room = self._get_room_or_404(code)
        now = self.clock()

        if room.phase != RoomPhase.RUNNING.value:
            return AnswerOut(accepted=False, reason="not_running")

        current_question_id = self._current_question_id(room)
        if current_question_id is None or current_question_id != payload.question_id:
            return AnswerOut(accepted=False, reason="not_current_question")

        if compute_stage(room, now) != Stage.OPEN.value:
            return AnswerOut(accepted=False, reason="not_open")

        player = self.players.get_in_room(room.id, payload.player_id)
        if not player:
            return AnswerOut(accepted=False, reason="bad_player")

        question = self.bank.get_question_by_id(payload.question_id)
        if not question:
            raise LookupError("QUESTION_NOT_FOUND")

        is_mcq = question.answer_type == "mcq"
        submission = Submission(
            option_index=payload.option_index if is_mcq else None,
            answer_text=None if is_mcq else payload.answer_text,
        )
        is_correct = evaluate_answer(question, submission, room_id=room.id)

        room_id, player_id, question_id = room.id, player.id, question.id
        try:
            self.answers.create(
                commit=False,
                room_id=room_id,
                player_id=player_id,
                question_id=question_id,
                option_index=submission.option_index,
                answer_text=submission.answer_text,
                is_correct=is_correct,
            )
            if is_correct:
                self.players.increment_score(player_id, commit=False)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return AnswerOut(accepted=False, reason="already_answered")

        was_fastest_correct = is_correct and self._claim_round_win(room_id, question_id, player_id, now)
        auto_closed = self._close_if_everyone_answered(code, question_id, now)

        return AnswerOut(
            accepted=True,
            is_correct=is_correct,
            was_fastest_correct=was_fastest_correct,
            auto_closed=auto_closed,
        )

    def _claim_round_win(self, room_id: int, question_id: int, player_id: int, now: datetime) -> bool:
        """Première bonne réponse de la question : la contrainte UNIQUE départage les ex-aequo."""
        if self.round_results.get_for_question(room_id, question_id):
            return False
        try:
            self.round_results.create(
                commit=True,
                room_id=room_id,
                question_id=question_id,
                winner_player_id=player_id,
                winner_received_at=now,
            )
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    def _close_if_everyone_answered(self, code: str, question_id: int, now: datetime) -> bool:
        # relecture : un autre appel a pu fermer ou avancer entre-temps
        room = self._get_room_or_404(code)
        if self._current_question_id(room) != question_id:
            return False
        if compute_stage(room, now) != Stage.OPEN.value:
            return False

        total = self.players.count_by_room(room.id)
        answered = self.answers.count_players_for_question(room.id, question_id)
        if total == 0 or answered < total:
            return False

        closed = self._close_answers(room, now)
        if closed:
            logger.info("Room %s: all %d players answered, closing early", room.code, total)
        return closed

    # ---------------------------------------------------------------------
    # Reset
    # ---------------------------------------------------------------------

    def reset_room(self, code: str) -> Room:
        room = self._get_room_or_404(code)

        # la sélection peut échouer : rien n'a encore été modifié
        question_ids = self._select_question_ids(
            selected_packs=room.selected_packs or [],
            rounds=room.rounds or [],
            strategy=room.selection_strategy,
            round_filter=room.round_filter,
            total_questions=room.total_questions,
        )

        room_id = room.id
        self.answers.delete_by_room(room_id, commit=False)
        self.round_results.delete_by_room(room_id, commit=False)
        self.players.reset_scores(room_id, commit=False)

        room = self.rooms.get(room_id)
        self.rooms.update(
            room,
            commit=False,
            phase=RoomPhase.LOBBY.value,
            question_ids=question_ids,
            question_index=0,
            countdown_start_at=None,
            open_at=None,
            close_at=None,
            reveal_at=None,
            next_at=None,
            updated_at=self.clock(),
        )
        self.session.commit()
        self.session.refresh(room)

        logger.info("Room %s reset with %d questions", room.code, len(question_ids))
        return room

    # ---------------------------------------------------------------------
    # Etat (polling)
    # ---------------------------------------------------------------------

    def get_state(self, code: str) -> RoomStateOut:
        room = self._get_room_or_404(code)
        now = self.clock()
        stage = compute_stage(room, now)

        players = self.players.list_by_room(room.id)
        current_question_id = self._current_question_id(room)

        question = reveal = winner = None
        can_show = room.phase in (RoomPhase.RUNNING.value, RoomPhase.FINISHED.value)

        if can_show and current_question_id is not None:
            record = self.bank.get_question_by_id(current_question_id)
            if record:
                question = to_public(record, room_id=room.id)

                if stage == Stage.REVEAL.value or room.phase == RoomPhase.FINISHED.value:
                    answer_index = None
                    if record.answer_type == "mcq":
                        answer_index = shuffle_mcq_for_room(
                            record.options, record.answer_index, room.id, record.id
                        ).answer_index
                    reveal = RevealOut(
                        answer_index=answer_index,
                        answer_text=record.answer_text,
                        accepted_answers=list(record.accepted_answers),
                        explanation=record.explanation,
                    )

                result = self.round_results.get_for_question(room.id, record.id)
                if result:
                    winner = WinnerOut(
                        player_id=result.winner_player_id,
                        received_at=_aware(result.winner_received_at),
                    )

        return RoomStateOut(
            server_now=_aware(now),
            code=room.code,
            room_id=room.id,
            phase=room.phase,
            stage=stage,
            question_index=room.question_index,
            question_count=len(room.question_ids or []),
            audio_mode=room.audio_mode,
            times=TimesOut(
                countdown_start_at=_aware(room.countdown_start_at),
                open_at=_aware(room.open_at),
                close_at=_aware(room.close_at),
                reveal_at=_aware(room.reveal_at),
                next_at=_aware(room.next_at),
            ),
            question=question,
            reveal=reveal,
            winner=winner,
            players=[
                PlayerOut(id=p.id, name=p.name, score=p.score, joined_at=_aware(p.joined_at))
                for p in players
            ],
        )
