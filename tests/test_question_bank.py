from conftest import add_pack, add_question
from trivia.db.models.packs import PackQuestion
from trivia.db.models.questions import Question
from trivia.db.repositories.questions import QuestionRepository
from trivia.features.questions.bank import QuestionBank
from trivia.features.questions.selection import SelectionRow


def _bank(session, cache):
    return QuestionBank(repo=QuestionRepository(session), cache=cache)


def test_get_question_by_id_is_cached(session, cache):
    q = add_question(session, text="Capitale ?", options=["A", "B", "C", "D"], answer_index=2)
    bank = _bank(session, cache)

    record = bank.get_question_by_id(q.id)
    assert record.text == "Capitale ?"
    assert record.options == ("A", "B", "C", "D")
    assert len(cache) == 1

    session.delete(session.get(Question, q.id))
    session.commit()
    # toujours servi par le cache
    assert bank.get_question_by_id(q.id) == record


def test_missing_question_is_not_cached(session, cache):
    bank = _bank(session, cache)
    assert bank.get_question_by_id(999) is None
    assert len(cache) == 0


def test_get_questions_by_ids_keeps_order(session, cache):
    ids = [add_question(session, text=f"Q{i}").id for i in range(3)]
    bank = _bank(session, cache)
    bank.get_question_by_id(ids[1])

    records = bank.get_questions_by_ids([ids[2], 12345, ids[0], ids[1]])
    assert [r.id for r in records] == [ids[2], ids[0], ids[1]]
    assert len(cache) == 3


def test_list_questions_for_packs(session, cache):
    general = add_pack(session, "general")
    music = add_pack(session, "music", round_type="audio")
    q1 = add_question(session, general, text="Q1")
    q2 = add_question(session, music, round_type="audio", text="Q2")
    add_question(session, add_pack(session, "autre"), text="Q3")

    # une même question dans deux packs : une ligne par pack
    session.add(PackQuestion(pack_id=music.id, question_id=q1.id))
    session.commit()

    rows = _bank(session, cache).list_questions_for_packs([general.id, music.id])
    assert sorted(rows, key=lambda r: (r.pack_id, r.question_id)) == [
        SelectionRow(question_id=q1.id, pack_id=general.id, round_type="general"),
        SelectionRow(question_id=q1.id, pack_id=music.id, round_type="general"),
        SelectionRow(question_id=q2.id, pack_id=music.id, round_type="audio"),
    ]
    assert _bank(session, cache).list_questions_for_packs([]) == []
