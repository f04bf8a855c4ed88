"""
Servicio de copia Zoho CRM -> base de datos.

Diseño (resumen):
- Reconciliar el esquema de la tabla del módulo (DDL, se confirma de inmediato)
- Copiar los registros en una única transacción

Si la copia falla después de reconciliar, el esquema queda actualizado sin
datos nuevos: es una ventana aceptada (el DDL no es transaccional en todos
los motores).
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from loguru import logger as default_logger
from sqlalchemy.engine import Engine

from zoho_db_copy.core.config import settings
from zoho_db_copy.infrastructure.database.session import create_db_engine
from zoho_db_copy.shared.constants.zoho_constants import DuplicateFieldPolicy
from zoho_db_copy.shared.exceptions.sync import SyncConfigError, SyncException

from .copier import CopyResult, ZohoRecordCopier
from .dao import ZohoModuleDao
from .listeners import ZohoChangeListener
from .schema_sync import ZohoSchemaReconciler
from .zoho_client import ZohoCredentials, ZohoCrmClient, ZohoCrmModuleDao


class ZohoDatabaseCopier:
    """
    Sincroniza una tabla de la base con los registros de un módulo Zoho.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        prefix: Optional[str] = None,
        listeners: Sequence[ZohoChangeListener] = (),
        page_size: Optional[int] = None,
        last_activity_column: Optional[str] = None,
        duplicate_policy: DuplicateFieldPolicy | str | None = None,
        logger=None,
    ) -> None:
        self._logger = logger or default_logger.bind(component="zoho_copier")
        self.reconciler = ZohoSchemaReconciler(
            engine,
            prefix=prefix,
            duplicate_policy=duplicate_policy,
            logger=logger,
        )
        self.copier = ZohoRecordCopier(
            engine,
            prefix=prefix,
            listeners=listeners,
            page_size=page_size,
            last_activity_column=last_activity_column,
            duplicate_policy=duplicate_policy,
            logger=logger,
        )

    def set_logger(self, logger) -> None:
        self._logger = logger
        self.reconciler.set_logger(logger)
        self.copier.set_logger(logger)

    def get_table_name(self, dao: ZohoModuleDao) -> str:
        return self.reconciler.get_table_name(dao)

    def reconcile_and_copy(self, dao: ZohoModuleDao, incremental: bool = True) -> CopyResult:
        """
        Args:
            dao: DAO del módulo Zoho
            incremental: si False se recorren todos los registros del módulo
        """
        self.reconciler.reconcile(dao)
        return self.copier.copy_data(dao, incremental)

    def sync_modules(self, daos: Iterable[ZohoModuleDao], incremental: bool = True) -> list[CopyResult]:
        """Copia varios módulos en secuencia; el primer error detiene el resto."""
        results = []
        for dao in daos:
            module = dao.get_module_name()
            self._logger.info(f"Sincronizando módulo {module}")
            try:
                results.append(self.reconcile_and_copy(dao, incremental))
            except SyncException as e:
                self._logger.error(f"Falló la copia de {module} [{e.error_code}]: {e.message}")
                raise
        return results


def build_from_env(
    module_names: Sequence[str],
    *,
    listeners: Sequence[ZohoChangeListener] = (),
) -> tuple[ZohoDatabaseCopier, list[ZohoModuleDao]]:
    """
    Constructor del pipeline leyendo la configuración (settings / .env).

    Args:
        module_names: módulos a copiar, p.ej. ["Leads", "Contacts"]
    """
    if not settings.ZOHO_ACCESS_TOKEN:
        raise SyncConfigError("Falta variable de entorno obligatoria: ZOHO_ACCESS_TOKEN")
    if not module_names:
        raise SyncConfigError("No se indicó ningún módulo a copiar")

    client = ZohoCrmClient(ZohoCredentials(access_token=settings.ZOHO_ACCESS_TOKEN))
    daos: list[ZohoModuleDao] = [ZohoCrmModuleDao(client, name) for name in module_names]
    copier = ZohoDatabaseCopier(create_db_engine(), listeners=listeners)
    return copier, daos
