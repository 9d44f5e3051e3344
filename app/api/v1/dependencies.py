"""
Dépendances générales de l'API v1.

- PaginationParams : page / taille / tri des routes de liste (patients, cliniques)

Pour la clinique courante (tenant_id), voir :
    app/api/v1/user/tenant_users_security.py

Pour la sécurité SuperAdmin, voir :
    app/api/v1/platform/super_admin_security.py
"""
import math
from typing import Annotated, Optional

from fastapi import Query


class PaginationParams:
    """
    Paramètres de pagination des routes de liste.

    Usage:
        @router.get("")
        def list_patients(pagination: PaginationParams = Depends()):
            service.get_all(page=pagination.page, size=pagination.size)
            ...
            return {..., "pages": pagination.pages(total)}
    """

    def __init__(
            self,
            page: Annotated[int, Query(ge=1, description="Numéro de page (commence à 1)")] = 1,
            size: Annotated[int, Query(ge=1, le=100, description="Nombre d'éléments par page")] = 20,
            sort_by: Annotated[Optional[str], Query(description="Champ de tri")] = None,
            sort_order: Annotated[str, Query(pattern="^(asc|desc)$", description="Ordre de tri")] = "asc",
    ):
        self.page = page
        self.size = size
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def pages(self, total: int) -> int:
        """Nombre de pages pour `total` éléments."""
        return math.ceil(total / self.size)
