from typing import Any, Dict, Generic, Optional, Type, TypeVar
from sqlmodel import SQLModel, Session, select, func
from sqlalchemy import update

# Type générique pour le modèle (Room, Player, etc.)
ModelT = TypeVar("ModelT", bound=SQLModel)

class BaseRepository(Generic[ModelT]):
    """
    Repository de base pour les opérations CRUD standards.

    👉 Ne contient aucune logique métier.
    👉 Gère la persistance générique : create, get, update, update_if, count.
    👉 Les repositories concrets définissent `model = MaClasseSQLModel`.
    """

    model: Type[ModelT]

    def __init__(self, session: Session):
        self.session = session

    # ---------- READ ----------

    def count(self) -> int:
        """Retourne le nombre total d’enregistrements."""
        return self.session.exec(select(func.count(self.model.id))).one()

    def get(self, id_: Any) -> Optional[ModelT]:
        """Retourne un enregistrement par son identifiant, ou None."""
        return self.session.get(self.model, id_)

    # ---------- CREATE ----------

    def create(self, *, commit: bool = True, **fields) -> ModelT:
        """
        Crée et persiste un nouvel enregistrement.
        commit=False permet d'orchestrer une transaction globale au niveau service.
        """
        entity = self.model(**fields)
        self.session.add(entity)
        if commit:
            self.session.commit()
            self.session.refresh(entity)
        else:
            # flush pour obtenir l'ID sans commit (utile pour FKs)
            self.session.flush()
        return entity

    # ---------- UPDATE ----------

    def update(self, entity: ModelT, *, commit: bool = True, **changes) -> ModelT:
        """
        Met à jour un enregistrement existant.
        commit=False permet d'orchestrer une transaction globale au niveau service.
        """
        for key, value in changes.items():
            setattr(entity, key, value)
        self.session.add(entity)
        if commit:
            self.session.commit()
            self.session.refresh(entity)
        else:
            self.session.flush()
        return entity

    def update_if(
        self,
        id_: Any,
        *,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        commit: bool = True,
    ) -> bool:
        """
        UPDATE conditionnel (compare-and-set) : n'écrit que si la ligne a encore
        les valeurs `expected` lues par l'appelant.
        Retourne True si la ligne a été modifiée, False si un autre appel est passé avant.
        """
        conditions = [self.model.id == id_]
        for key, value in expected.items():
            column = getattr(self.model, key)
            conditions.append(column.is_(None) if value is None else column == value)

        stmt = (
            update(self.model)
            .where(*conditions)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(stmt)
        if commit:
            self.session.commit()
        else:
            # les objets déjà chargés ne voient pas l'UPDATE SQL
            self.session.expire_all()
        return result.rowcount == 1

