"""
Contrato del DAO de un módulo Zoho consumido por el copiador.

La implementación HTTP vive en zoho_client.py; los tests usan DAOs en memoria.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from .types import FieldDescriptor


class ZohoRecordLike(Protocol):
    """Registro de un módulo: basta con exponer su id de Zoho."""

    def get_zoho_id(self) -> str:
        ...


class ZohoModuleDao(Protocol):
    def get_module_name(self) -> str:
        ...

    def get_plural_module_name(self) -> str:
        ...

    def get_fields(self) -> Mapping[str, Sequence[FieldDescriptor]]:
        """Fields del módulo agrupados por sección."""
        ...

    def get_paginated_records(
        self,
        sort_column: Optional[str],
        sort_order: Optional[str],
        since: Optional[datetime],
        select_columns: Optional[Sequence[str]],
        page_size: int,
        offset: int,
    ) -> Sequence[ZohoRecordLike]:
        """
        Una página de registros modificados en o después de `since` (si no es None).
        Una página vacía indica que no hay más registros.
        """
        ...
