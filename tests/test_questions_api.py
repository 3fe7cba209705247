from conftest import add_pack, add_question

API = "/api/v1"


def test_list_packs_with_counts(client, session, general_pack):
    music = add_pack(session, "music", round_type="audio", label="Blind test")
    add_question(session, music, round_type="audio", text="Morceau 1", audio_path="music/1.mp3")
    add_question(session, music, round_type="audio", text="Morceau 2", audio_path="music/2.mp3")
    add_pack(session, "art", round_type="picture", label="Art")

    res = client.get(f"{API}/packs")
    assert res.status_code == 200
    packs = res.json()
    assert [p["slug"] for p in packs] == ["general", "art", "music"]

    by_slug = {p["slug"]: p for p in packs}
    assert by_slug["general"]["question_count"] == 5
    assert by_slug["music"]["question_count"] == 2
    assert by_slug["music"]["audio_count"] == 2
    assert by_slug["art"]["question_count"] == 0


def test_questions_by_ids(client, session):
    q1 = add_question(session, text="Q1", options=["a", "b", "c", "d"], answer_index=3)
    q2 = add_question(session, answer_type="text", text="Q2", answer_text="secret",
                      image_path="art/mona lisa.jpg")

    res = client.get(f"{API}/questions/by-ids", params={"ids": f"{q2.id},999,{q1.id}"})
    assert res.status_code == 200
    questions = res.json()["questions"]
    assert [q["id"] for q in questions] == [q2.id, q1.id]

    text_q, mcq_q = questions
    assert "answer_text" not in text_q
    assert text_q["image_url"] == "/api/v1/media/image?path=art%2Fmona%20lisa.jpg"
    assert mcq_q["options"] == ["a", "b", "c", "d"]
    assert "answer_index" not in mcq_q


def test_questions_by_ids_bad_input(client):
    assert client.get(f"{API}/questions/by-ids", params={"ids": "1,x"}).status_code == 400
    assert client.get(f"{API}/questions/by-ids", params={"ids": ","}).status_code == 400
    assert client.get(f"{API}/questions/by-ids").status_code == 422


def test_sample_questions(client, session, general_pack):
    music = add_pack(session, "music", round_type="audio")
    add_question(session, music, round_type="audio", text="Morceau")

    res = client.post(
        f"{API}/questions/sample",
        json={"rounds": [{"pack_id": general_pack.id, "count": 2}, {"pack_id": music.id, "count": 1}]},
    )
    assert res.status_code == 200
    assert len(res.json()["question_ids"]) == 3

    res = client.post(
        f"{API}/questions/sample",
        json={"rounds": [{"pack_id": music.id, "count": 1}], "round_filter": "no_audio"},
    )
    assert res.status_code == 400
    assert res.json()["detail"]["kind"] == "INSUFFICIENT_QUESTIONS_PER_PACK"

    res = client.post(f"{API}/questions/sample", json={"rounds": [{"pack_id": music.id, "count": 0}]})
    assert res.status_code == 422
