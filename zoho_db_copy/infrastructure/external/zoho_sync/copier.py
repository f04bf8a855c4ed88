"""
Copia incremental de registros Zoho hacia la tabla de un módulo.

Diseño (resumen):
- Watermark = MAX(last activity) en la tabla, + 1 segundo (si no, se vuelve a
  traer el último registro ya copiado).
- Paginación por offset hasta recibir una página vacía (sin tope de páginas).
- Por registro: SELECT por id -> INSERT o UPDATE -> notificación a listeners.
- Toda la copia corre en UNA transacción: o se confirma completa o no queda nada.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from loguru import logger as default_logger
from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from zoho_db_copy.core.config import settings
from zoho_db_copy.core.logging import NOTICE, register_notice_level
from zoho_db_copy.shared.constants.zoho_constants import DuplicateFieldPolicy
from zoho_db_copy.shared.exceptions.sync import (
    RecordWriteError,
    RemoteFetchError,
    SchemaMismatchError,
)

from .dao import ZohoModuleDao, ZohoRecordLike
from .listeners import ZohoChangeListener
from .naming import get_table_name
from .types import ID_COLUMN, Accessor, flatten_fields, serialize_value

WATERMARK_TICK = timedelta(seconds=1)


@dataclass(frozen=True)
class CopyResult:
    table_name: str
    processed: int
    inserted: int
    updated: int
    watermark: Optional[datetime]


class ZohoRecordCopier:
    """
    Copia los registros de un módulo Zoho en su tabla (ya reconciliada).
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
        register_notice_level()
        self._engine = engine
        self._prefix = settings.ZOHO_TABLE_PREFIX if prefix is None else prefix
        self._listeners = tuple(listeners)
        self._page_size = page_size or settings.ZOHO_PAGE_SIZE
        self._last_activity_column = last_activity_column or settings.ZOHO_LAST_ACTIVITY_COLUMN
        self._duplicate_policy = DuplicateFieldPolicy(
            duplicate_policy or settings.ZOHO_DUPLICATE_FIELD_POLICY
        )
        self._logger = logger or default_logger.bind(component="copier")

    def set_logger(self, logger) -> None:
        self._logger = logger

    def get_table_name(self, dao: ZohoModuleDao) -> str:
        return get_table_name(self._prefix, dao.get_plural_module_name())

    def copy_data(self, dao: ZohoModuleDao, incremental: bool = True) -> CopyResult:
        """
        Copia los registros del módulo.

        Args:
            dao: DAO del módulo Zoho
            incremental: si True, solo registros con actividad posterior al watermark

        Raises:
            RemoteFetchError: falló la obtención de una página
            RecordWriteError: falló un SELECT/INSERT/UPDATE (rollback completo)
        """
        table_name = self.get_table_name(dao)
        inserted = updated = processed = 0

        with self._engine.begin() as conn:
            table = Table(table_name, MetaData(), autoload_with=conn)
            accessors = self._build_accessors(dao, table)

            watermark = None
            if incremental:
                watermark = self._read_watermark(conn, table)
                self._logger.info(f"Copiando datos incrementales de '{table_name}'")
            else:
                self._logger.log(NOTICE, f"Copiando datos COMPLETOS de '{table_name}'")

            offset = 0
            while records := self._fetch_page(dao, watermark, offset):
                for record in records:
                    if self._copy_record(conn, table, accessors, record, dao):
                        inserted += 1
                    else:
                        updated += 1
                    processed += 1
                    self._logger.info(f"{table_name}: Processed record {processed}")
                offset += self._page_size

        self._logger.info(
            f"Copia de '{table_name}' confirmada: procesados={processed}, "
            f"inserts={inserted}, updates={updated}"
        )
        return CopyResult(
            table_name=table_name,
            processed=processed,
            inserted=inserted,
            updated=updated,
            watermark=watermark,
        )

    def _build_accessors(self, dao: ZohoModuleDao, table: Table) -> dict[str, Accessor]:
        """Columna -> función que lee su valor de un record (case-insensitive)."""
        fields_by_name = {
            descriptor.name.lower(): descriptor
            for descriptor in flatten_fields(dao.get_fields(), self._duplicate_policy)
        }

        accessors: dict[str, Accessor] = {}
        for column in table.columns:
            if column.name == ID_COLUMN:
                continue
            descriptor = fields_by_name.get(column.name.lower())
            if descriptor is None:
                raise SchemaMismatchError(table.name, column.name)
            accessors[column.name] = descriptor.accessor()
        return accessors

    def _read_watermark(self, conn: Connection, table: Table) -> Optional[datetime]:
        column = next(
            (c for c in table.columns if c.name.lower() == self._last_activity_column.lower()),
            None,
        )
        if column is None:
            self._logger.warning(
                f"'{table.name}' no tiene columna '{self._last_activity_column}'; se copia todo."
            )
            return None

        last_activity = conn.execute(select(func.max(column))).scalar()
        if last_activity is None:
            return None
        if isinstance(last_activity, str):
            last_activity = datetime.fromisoformat(last_activity)

        self._logger.info(f"Última actividad: {last_activity.isoformat()}")
        return last_activity + WATERMARK_TICK

    def _fetch_page(
        self, dao: ZohoModuleDao, since: Optional[datetime], offset: int
    ) -> Sequence[ZohoRecordLike]:
        try:
            records = dao.get_paginated_records(None, None, since, None, self._page_size, offset)
        except RemoteFetchError:
            raise
        except Exception as e:
            raise RemoteFetchError(
                f"No se pudo obtener la página (offset={offset}): {e}",
                module=dao.get_module_name(),
                offset=offset,
            ) from e
        return records or []

    def _copy_record(
        self,
        conn: Connection,
        table: Table,
        accessors: dict[str, Accessor],
        record: ZohoRecordLike,
        dao: ZohoModuleDao,
    ) -> bool:
        """INSERT o UPDATE de un record. Retorna True si fue un insert."""
        data = {name: serialize_value(accessor(record)) for name, accessor in accessors.items()}
        record_id = record.get_zoho_id()
        id_column = table.c[ID_COLUMN]

        try:
            previous = conn.execute(select(table).where(id_column == record_id)).mappings().first()

            if previous is None:
                self._logger.debug(f"Insertando registro con ID '{record_id}'.")
                data[ID_COLUMN] = record_id
                conn.execute(table.insert().values(data))
            else:
                self._logger.debug(f"Actualizando registro con ID '{record_id}'.")
                conn.execute(table.update().where(id_column == record_id).values(data))
        except SQLAlchemyError as e:
            raise RecordWriteError(table.name, record_id, str(e)) from e

        if previous is None:
            for listener in self._listeners:
                listener.on_insert(data, dao)
            return True

        # El UPDATE no escribe el id; se agrega para los listeners.
        data[ID_COLUMN] = record_id
        for listener in self._listeners:
            listener.on_update(data, dict(previous), dao)
        return False
