from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError
from sqlmodel import Session, select

from trivia.db.models.questions import Question
from trivia.db.repositories.packs import PackQuestionRepository, PackRepository
from trivia.features.questions.schemas import PackSeedIn, QuestionSeedIn


# -----------------------------
# YAML loader
# -----------------------------
def load_seed_yaml(seed_path: str | Path) -> Dict[str, Any]:
    path = Path(seed_path)
    if not path.exists():
        raise FileNotFoundError(f"Seed YAML introuvable: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Le YAML de seed doit contenir un objet racine (mapping).")
    return data


def _find_question(session: Session, item: QuestionSeedIn) -> Optional[Question]:
    """Idempotence : même intitulé + même type de réponse = même question."""
    stmt = select(Question).where(
        Question.text == item.text,
        Question.answer_type == item.answer_type,
    )
    return session.exec(stmt).first()


# -----------------------------
# Seed Packs
# -----------------------------
def seed_packs(session: Session, data: Dict[str, Any]) -> Dict[str, int]:
    """Insère les packs absents. Retourne slug -> id pour tous les packs du YAML."""
    repo = PackRepository(session)
    packs: List[Dict[str, Any]] = data.get("packs", [])
    if not packs:
        print("⚠️ Aucun pack dans le YAML (clé 'packs').")
        return {}

    slug_to_id: Dict[str, int] = {}
    inserted = 0
    for raw in packs:
        item = PackSeedIn.model_validate(raw)
        existing = repo.get_by_slug(item.slug)
        if existing:
            slug_to_id[item.slug] = existing.id
            continue
        pack = repo.create(
            commit=False,
            slug=item.slug,
            label=item.label or item.slug,
            round_type=item.round_type,
            description=item.description,
        )
        slug_to_id[item.slug] = pack.id
        inserted += 1

    session.commit()
    print(f"✅ Packs insérés : {inserted} | déjà présents : {len(packs) - inserted}.")
    return slug_to_id


# -----------------------------
# Seed Questions (+ liens pack/question)
# -----------------------------
def seed_questions(session: Session, data: Dict[str, Any], slug_to_id: Dict[str, int]) -> None:
    """
    Questions de la clé `questions:`.
    - question déjà présente : on ne la recrée pas, on complète seulement ses liens de packs
    - question invalide : ignorée avec un message (le reste du seed continue)
    """
    link_repo = PackQuestionRepository(session)
    questions: List[Dict[str, Any]] = data.get("questions", [])
    if not questions:
        print("⚠️ Aucune question dans le YAML (clé 'questions').")
        return

    inserted = 0
    skipped_existing = 0
    skipped_invalid = 0
    linked = 0

    for i, raw in enumerate(questions):
        try:
            item = QuestionSeedIn.model_validate(raw)
        except ValidationError as e:
            skipped_invalid += 1
            print(f"⚠️ Question invalide à l'index {i} → ignorée : {e.errors()[0].get('msg')}")
            continue

        unknown = [slug for slug in item.packs if slug not in slug_to_id]
        if unknown:
            skipped_invalid += 1
            print(f"⚠️ Packs inconnus {unknown} pour la question '{item.text[:40]}' → ignorée.")
            continue

        question = _find_question(session, item)
        if question:
            skipped_existing += 1
        else:
            question = Question(
                round_type=item.round_type,
                answer_type=item.answer_type,
                text=item.text,
                options=list(item.options),
                answer_index=item.answer_index,
                answer_text=item.answer_text,
                accepted_answers=list(item.accepted_answers),
                explanation=item.explanation,
                audio_path=item.audio_path,
                image_path=item.image_path,
            )
            session.add(question)
            session.flush()
            inserted += 1

        for slug in item.packs:
            pack_id = slug_to_id[slug]
            if not link_repo.exists(pack_id, question.id):
                link_repo.create(commit=False, pack_id=pack_id, question_id=question.id)
                linked += 1

    session.commit()
    print(
        f"✅ Questions insérées : {inserted} | "
        f"déjà présentes : {skipped_existing} | "
        f"invalides : {skipped_invalid} | "
        f"liens pack/question créés : {linked}."
    )


# -----------------------------
# Main entrypoint
# -----------------------------
def seed_all(session: Session, seed_path: str | Path) -> None:
    data = load_seed_yaml(seed_path)

    slug_to_id = seed_packs(session, data)
    seed_questions(session, data, slug_to_id)
