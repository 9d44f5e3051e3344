"""
Store de ressources scopé par tenant.

Toutes les lectures et écritures des services métier passent par un
`TenantScopedRepository` : chaque requête porte `Model.tenant_id == tenant_id`
et toute instance ajoutée reçoit le tenant_id courant.

Un identifiant appartenant à une autre clinique se comporte exactement
comme un identifiant inexistant (résultat absent).

Usage:
    repo = TenantScopedRepository(db, tenant_id, ComplianceDocument)
    doc = repo.get(document_id)           # None si absent ou autre tenant
    total = repo.count(ComplianceDocument.status == DocumentStatus.EXPIRED)
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.database.base_class import Base

ModelT = TypeVar("ModelT", bound=Base)


class TenantScopedRepository(Generic[ModelT]):
    """
    Accès CRUD à un modèle, restreint à une clinique.

    Le modèle doit porter une colonne `tenant_id`.
    """

    def __init__(self, db: Session, tenant_id: int, model: Type[ModelT]):
        self.db = db
        self.tenant_id = tenant_id
        self.model = model

    # =========================================================================
    # LECTURE
    # =========================================================================

    def select(self) -> Select:
        """Requête de base filtrée par tenant."""
        return select(self.model).where(self.model.tenant_id == self.tenant_id)

    def get(self, id: int) -> Optional[ModelT]:
        """Récupère une ligne par ID (None si absente ou d'un autre tenant)."""
        query = self.select().where(self.model.id == id)
        return self.db.execute(query).scalar_one_or_none()

    def list(
            self,
            *criteria,
            order_by: Any = None,
            offset: Optional[int] = None,
            limit: Optional[int] = None,
    ) -> List[ModelT]:
        """Liste les lignes du tenant correspondant aux critères."""
        query = self.select().where(*criteria)
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())

    def count(self, *criteria) -> int:
        """Compte les lignes du tenant correspondant aux critères."""
        query = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.tenant_id == self.tenant_id, *criteria)
        )
        return self.db.execute(query).scalar() or 0

    def sum(self, column, *criteria):
        """Somme d'une colonne numérique (0 si aucune ligne)."""
        query = (
            select(func.coalesce(func.sum(column), 0))
            .where(self.model.tenant_id == self.tenant_id, *criteria)
        )
        return self.db.execute(query).scalar() or 0

    def group_count(self, column, *criteria) -> Dict[Any, int]:
        """Nombre de lignes par valeur de `column` (GROUP BY)."""
        query = (
            select(column, func.count())
            .where(self.model.tenant_id == self.tenant_id, *criteria)
            .group_by(column)
        )
        return {value: count for value, count in self.db.execute(query).all()}

    # =========================================================================
    # ÉCRITURE
    # =========================================================================

    def add(self, instance: ModelT, commit: bool = True) -> ModelT:
        """
        Ajoute une instance en lui imposant le tenant courant.

        Raises:
            ValueError: si l'instance est déjà rattachée à un autre tenant
        """
        existing = getattr(instance, "tenant_id", None)
        if existing is not None and existing != self.tenant_id:
            raise ValueError(
                f"{self.model.__name__} rattaché au tenant {existing}, "
                f"écriture refusée pour le tenant {self.tenant_id}"
            )
        instance.tenant_id = self.tenant_id
        self.db.add(instance)
        if commit:
            self.save(instance)
        return instance

    def save(self, instance: Optional[ModelT] = None) -> Optional[ModelT]:
        """Commit la transaction (et rafraîchit l'instance si fournie)."""
        self.db.commit()
        if instance is not None:
            self.db.refresh(instance)
        return instance

    def delete(self, instance: ModelT) -> None:
        """Supprime une instance du tenant."""
        if instance.tenant_id != self.tenant_id:
            raise ValueError("Suppression d'une ligne d'un autre tenant refusée")
        self.db.delete(instance)
        self.db.commit()
