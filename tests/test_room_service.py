import itertools

import pytest

from conftest import add_pack, add_question
from trivia.db.models.packs import PackQuestion
from trivia.db.models.questions import Question
from trivia.features.questions.evaluation import AnswerValidationError
from trivia.features.questions.selection import SelectionError, SelectionErrorKind
from trivia.features.rooms.schemas import AnswerIn, RoomCreateIn, RoundIn
from trivia.features.rooms.services import ConflictError, normalize_player_name


def _create(svc, pack, **overrides):
    fields = dict(selected_packs=[pack.id], total_questions=3)
    fields.update(overrides)
    return svc.create_room(RoomCreateIn(**fields))


def _correct_index(state):
    return next(i for i, text in enumerate(state.question.options) if text.startswith("Bonne"))


def _wrong_index(state):
    return next(i for i, text in enumerate(state.question.options) if not text.startswith("Bonne"))


def _answer(svc, code, player, state, *, correct=True):
    index = _correct_index(state) if correct else _wrong_index(state)
    return svc.record_answer(
        code,
        AnswerIn(player_id=player.id, question_id=state.question.id, option_index=index),
    )


@pytest.fixture
def svc(make_service):
    return make_service()


@pytest.fixture
def room(svc, general_pack):
    return _create(svc, general_pack)


# -----------------------------
# Création / lobby
# -----------------------------
def test_create_room(room, general_pack, session):
    assert room.phase == "lobby"
    assert len(room.code) == 8
    assert room.code == room.code.upper()
    assert len(room.question_ids) == 3
    assert len(set(room.question_ids)) == 3
    assert room.answer_seconds == 12


def test_create_room_selection_failure_creates_nothing(svc, general_pack, session):
    with pytest.raises(SelectionError) as exc:
        _create(svc, general_pack, total_questions=50)
    assert exc.value.kind == SelectionErrorKind.INSUFFICIENT_QUESTIONS
    assert svc.rooms.count() == 0


def test_create_room_per_pack(svc, session, general_pack):
    music = add_pack(session, "music", round_type="audio")
    for i in range(3):
        add_question(session, music, round_type="audio", text=f"Morceau {i}")

    room = _create(
        svc,
        general_pack,
        selected_packs=[],
        selection_strategy="per_pack",
        rounds=[RoundIn(pack_id=general_pack.id, count=2), RoundIn(pack_id=music.id, count=1)],
        total_questions=None,
    )
    assert len(room.question_ids) == 3


def test_create_room_retries_code_collisions(make_service, general_pack):
    _create(make_service(code_factory=lambda: "aaaa2222"), general_pack)

    codes = iter(["AAAA2222", "AAAA2222", "BBBB3333"])
    room = _create(make_service(code_factory=lambda: next(codes)), general_pack)
    assert room.code == "BBBB3333"


def test_create_room_gives_up_after_max_attempts(make_service, general_pack):
    _create(make_service(code_factory=lambda: "SAME2222"), general_pack)
    with pytest.raises(ConflictError):
        _create(make_service(code_factory=lambda: "SAME2222"), general_pack)


def test_join_room(svc, room, clock):
    player = svc.join_room(room.code.lower(), "  Les   Quizz ")
    assert player.name == "Les Quizz"
    assert player.score == 0
    assert player.joined_at == clock.now


def test_join_room_name_is_unique_per_room(svc, room, general_pack):
    svc.join_room(room.code, "Équipe A")
    with pytest.raises(ConflictError, match="NAME_TAKEN"):
        svc.join_room(room.code, "equipe  a")

    other = _create(svc, general_pack)
    assert svc.join_room(other.code, "Équipe A").name == "Équipe A"


def test_join_room_errors(svc, room):
    with pytest.raises(LookupError):
        svc.join_room("NOPE9999", "A")
    with pytest.raises(ValueError, match="MISSING_NAME"):
        svc.join_room(room.code, "   ")

    svc.start_room(room.code)
    with pytest.raises(ConflictError, match="ROOM_NOT_IN_LOBBY"):
        svc.join_room(room.code, "En retard")


def test_normalize_player_name():
    assert normalize_player_name("  Équipe   Rouge ") == "equipe rouge"


# -----------------------------
# Start / advance
# -----------------------------
def test_start_room_only_once(svc, room, clock):
    assert svc.start_room(room.code).started is True
    again = svc.start_room(room.code)
    assert again.started is False
    assert again.reason == "already_running"

    state = svc.get_state(room.code)
    assert state.phase == "running"
    assert state.stage == "countdown"
    assert state.question_index == 0
    assert state.times.countdown_start_at.replace(tzinfo=None) == clock.now


def test_advance_waits_for_next_at(svc, room, clock):
    svc.start_room(room.code)

    clock.advance(21)
    assert svc.advance_room(room.code).advanced is False

    clock.advance(1)
    assert svc.get_state(room.code).stage == "needs_advance"
    out = svc.advance_room(room.code)
    assert out.advanced is True
    assert out.question_index == 1

    # deuxième appel au même instant : le nouveau next_at est dans le futur
    assert svc.advance_room(room.code).advanced is False
    assert svc.get_state(room.code).question_index == 1


def test_advance_lost_race_does_not_move_twice(make_service, room, clock):
    first, second = make_service(), make_service()
    first.start_room(room.code)
    clock.advance(30)

    stale = second.rooms.get_by_code(room.code)
    stale_id, stale_index, stale_next_at = stale.id, stale.question_index, stale.next_at

    assert first.advance_room(room.code).advanced is True
    # la ligne a changé depuis la lecture "stale" : l'UPDATE conditionnel ne passe pas
    assert second.rooms.update_if(
        stale_id,
        expected={"phase": "running", "question_index": stale_index, "next_at": stale_next_at},
        changes={"question_index": stale_index + 1},
    ) is False
    assert first.get_state(room.code).question_index == 1


def test_advance_to_finished(svc, room, clock):
    svc.start_room(room.code)
    indexes = []
    for _ in range(3):
        clock.advance(22)
        out = svc.advance_room(room.code)
        indexes.append(svc.get_state(room.code).question_index)
    assert out.finished is True
    assert indexes == [1, 2, 2]

    state = svc.get_state(room.code)
    assert state.phase == "finished"
    assert state.stage == "finished"
    assert state.reveal is not None

    clock.advance(60)
    assert svc.advance_room(room.code).advanced is False


def test_advance_in_lobby_is_a_no_op(svc, room):
    out = svc.advance_room(room.code)
    assert out.advanced is False and out.finished is False


# -----------------------------
# Réponses
# -----------------------------
def test_answer_flow(svc, room, clock):
    alice = svc.join_room(room.code, "Alice")
    bob = svc.join_room(room.code, "Bob")
    svc.start_room(room.code)

    state = svc.get_state(room.code)
    assert _answer(svc, room.code, alice, state).reason == "not_open"

    clock.advance(3)
    state = svc.get_state(room.code)
    assert state.stage == "open"

    first = _answer(svc, room.code, alice, state)
    assert first.accepted is True
    assert first.is_correct is True
    assert first.was_fastest_correct is True
    assert first.auto_closed is False

    duplicate = _answer(svc, room.code, alice, state, correct=False)
    assert duplicate.accepted is False
    assert duplicate.reason == "already_answered"

    clock.advance(1)
    second = _answer(svc, room.code, bob, state)
    assert second.is_correct is True
    assert second.was_fastest_correct is False
    # tous les joueurs ont répondu : fermeture anticipée
    assert second.auto_closed is True

    state = svc.get_state(room.code)
    assert state.stage == "wait"
    assert state.winner.player_id == alice.id
    assert state.reveal is None

    clock.advance(2)
    state = svc.get_state(room.code)
    assert state.stage == "reveal"
    assert state.question.options[state.reveal.answer_index].startswith("Bonne")
    assert {p.name: p.score for p in state.players} == {"Alice": 1, "Bob": 1}


def test_wrong_answer_scores_nothing(svc, room, clock):
    alice = svc.join_room(room.code, "Alice")
    svc.join_room(room.code, "Bob")
    svc.start_room(room.code)
    clock.advance(3)

    out = _answer(svc, room.code, alice, svc.get_state(room.code), correct=False)
    assert out.accepted is True and out.is_correct is False
    assert out.was_fastest_correct is False
    assert svc.get_state(room.code).winner is None
    assert svc.get_state(room.code).players[0].score == 0


def test_auto_close_waits_for_every_player(svc, room, clock):
    players = [svc.join_room(room.code, name) for name in ("A", "B", "C")]
    svc.start_room(room.code)
    clock.advance(3)
    state = svc.get_state(room.code)

    results = [_answer(svc, room.code, p, state, correct=False) for p in players]
    assert [r.auto_closed for r in results] == [False, False, True]
    assert svc.get_state(room.code).times.close_at.replace(tzinfo=None) == clock.now


def test_answer_rejections(svc, room, general_pack, clock):
    alice = svc.join_room(room.code, "Alice")
    other_room = _create(svc, general_pack)
    stranger = svc.join_room(other_room.code, "Intrus")

    lobby_state_question = room.question_ids[0]
    out = svc.record_answer(room.code, AnswerIn(player_id=alice.id, question_id=lobby_state_question, option_index=0))
    assert out.reason == "not_running"

    svc.start_room(room.code)
    clock.advance(3)
    state = svc.get_state(room.code)

    not_current = room.question_ids[1]
    out = svc.record_answer(room.code, AnswerIn(player_id=alice.id, question_id=not_current, option_index=0))
    assert out.reason == "not_current_question"

    assert _answer(svc, room.code, stranger, state).reason == "bad_player"

    clock.advance(12)
    assert _answer(svc, room.code, alice, state).reason == "not_open"


def test_answer_validation_errors(svc, session, clock):
    pack = add_pack(session, "texte")
    add_question(session, pack, answer_type="text", text="Auteur ?", answer_text="Victor Hugo")
    room = svc.create_room(RoomCreateIn(selected_packs=[pack.id], total_questions=1))
    alice = svc.join_room(room.code, "Alice")
    svc.start_room(room.code)
    clock.advance(3)

    qid = room.question_ids[0]
    with pytest.raises(AnswerValidationError) as exc:
        svc.record_answer(room.code, AnswerIn(player_id=alice.id, question_id=qid, answer_text="  "))
    assert exc.value.code == "MISSING_ANSWER_TEXT"

    out = svc.record_answer(room.code, AnswerIn(player_id=alice.id, question_id=qid, answer_text="victor hugo"))
    assert out.is_correct is True
    assert out.auto_closed is True

    clock.advance(2)
    state = svc.get_state(room.code)
    assert state.question.options == []
    assert state.reveal is not None
    assert state.reveal.answer_index is None
    assert state.reveal.answer_text == "Victor Hugo"


def test_force_close(svc, room, clock):
    svc.join_room(room.code, "Alice")
    assert svc.force_close(room.code).reason == "not_running"

    svc.start_room(room.code)
    out = svc.force_close(room.code)
    assert out.forced is False
    assert out.stage == "countdown"

    clock.advance(5)
    assert svc.force_close(room.code).forced is True

    state = svc.get_state(room.code)
    assert state.stage == "wait"
    assert state.times.close_at.replace(tzinfo=None) == clock.now
    assert svc.force_close(room.code).forced is False


def test_force_close_reschedules_reveal_and_next(svc, room, clock):
    svc.start_room(room.code)
    clock.advance(5)
    svc.force_close(room.code)

    times = svc.get_state(room.code).times
    assert (times.reveal_at - times.close_at).total_seconds() == 2
    assert (times.next_at - times.reveal_at).total_seconds() == 5

    clock.advance(7)
    assert svc.advance_room(room.code).advanced is True


# -----------------------------
# Reset
# -----------------------------
def test_reset_room(svc, room, clock):
    alice = svc.join_room(room.code, "Alice")
    svc.start_room(room.code)
    clock.advance(3)
    _answer(svc, room.code, alice, svc.get_state(room.code))
    assert svc.get_state(room.code).players[0].score == 1

    reset = svc.reset_room(room.code)
    assert reset.phase == "lobby"
    assert len(reset.question_ids) == 3

    state = svc.get_state(room.code)
    assert state.phase == "lobby"
    assert state.question_index == 0
    assert state.times.open_at is None
    assert [(p.name, p.score) for p in state.players] == [("Alice", 0)]
    assert svc.answers.count_players_for_question(room.id, room.question_ids[0]) == 0

    # on peut rejouer
    assert svc.start_room(room.code).started is True


def test_reset_failure_leaves_room_untouched(svc, session, clock):
    pack = add_pack(session, "petit")
    questions = [add_question(session, pack, text=f"Q{i}") for i in range(2)]
    room = svc.create_room(RoomCreateIn(selected_packs=[pack.id], total_questions=2))
    svc.start_room(room.code)

    session.delete(session.get(Question, questions[0].id))
    session.commit()

    with pytest.raises(SelectionError):
        svc.reset_room(room.code)
    assert svc.get_state(room.code).phase == "running"


def test_question_index_is_monotonic(svc, room, clock):
    svc.start_room(room.code)
    seen = []
    for step in itertools.islice(itertools.cycle([5, 10, 7]), 12):
        clock.advance(step)
        svc.advance_room(room.code)
        svc.force_close(room.code)
        seen.append(svc.get_state(room.code).question_index)
    assert seen == sorted(seen)
    assert seen[-1] == 2


def test_question_shared_by_two_packs_is_played_once(svc, session, clock):
    first = add_pack(session, "pack-a")
    second = add_pack(session, "pack-b")
    shared = add_question(session, first, text="Partagée", options=["Bonne", "x", "y", "z"])
    only_first = add_question(session, first, text="Seule", options=["Bonne", "x", "y", "z"])
    session.add(PackQuestion(pack_id=second.id, question_id=shared.id))
    session.commit()

    with pytest.raises(SelectionError) as exc:
        svc.create_room(RoomCreateIn(selected_packs=[first.id, second.id], total_questions=3))
    assert exc.value.details == {"requested": 3, "available": 2}

    room = svc.create_room(RoomCreateIn(selected_packs=[first.id, second.id], total_questions=2))
    assert sorted(room.question_ids) == sorted([shared.id, only_first.id])

    alice = svc.join_room(room.code, "Alice")
    svc.start_room(room.code)
    for _ in range(2):
        clock.advance(3)
        out = _answer(svc, room.code, alice, svc.get_state(room.code))
        assert out.accepted is True
        assert out.auto_closed is True
        clock.advance(7)
        svc.advance_room(room.code)

    assert svc.get_state(room.code).players[0].score == 2
