"""
Reconciliación del esquema de la tabla destino con los fields de un módulo Zoho.

Diseño (resumen):
- El esquema lo define Zoho: columna id (texto, PK) + una columna por field.
- Todas las columnas (salvo id) son nullable: un record puede omitir cualquier field.
- Si la tabla no existe se crea completa; si existe se calcula el diff
  columna a columna y se aplica como un único ALTER (batch de Alembic).
- Sin diferencias no se ejecuta DDL: correr N veces es un no-op barato.

El DDL corre en su propia transacción y se confirma de inmediato, antes de la
copia de datos.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Optional

from alembic.migration import MigrationContext
from alembic.operations import Operations
from loguru import logger as default_logger
from sqlalchemy import Column, Index, MetaData, Table, Text, inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeEngine

from zoho_db_copy.core.config import settings
from zoho_db_copy.core.logging import NOTICE, register_notice_level
from zoho_db_copy.shared.constants.zoho_constants import DuplicateFieldPolicy
from zoho_db_copy.shared.exceptions.sync import SchemaApplicationError

from .dao import ZohoModuleDao
from .naming import get_table_name
from .types import ID_COLUMN, column_spec_for, flatten_fields

CREATE = "create"
ALTER = "alter"


# PostgreSQL trunca/rechaza identificadores de más de 63 caracteres.
MAX_IDENTIFIER_LENGTH = 63
_INDEX_HASH_LENGTH = 8


def index_name(table_name: str, column_name: str) -> str:
    """
    Nombre determinista del índice de una columna: ix_<tabla>_<columna>.

    Si excede MAX_IDENTIFIER_LENGTH se trunca y se agrega un sufijo sha1 de
    tabla.columna, para que dos columnas largas no colisionen.
    """
    name = f"ix_{table_name}_{column_name}"
    if len(name) <= MAX_IDENTIFIER_LENGTH:
        return name

    digest = hashlib.sha1(f"{table_name}.{column_name}".encode("utf-8")).hexdigest()
    keep = MAX_IDENTIFIER_LENGTH - _INDEX_HASH_LENGTH - 1
    return f"{name[:keep]}_{digest[:_INDEX_HASH_LENGTH]}"


@dataclass
class SchemaChange:
    """Cambio de esquema a aplicar sobre una tabla (un CREATE o un ALTER)."""

    table_name: str
    kind: str
    added_columns: list[str] = field(default_factory=list)
    dropped_columns: list[str] = field(default_factory=list)
    retyped_columns: list[str] = field(default_factory=list)
    relaxed_columns: list[str] = field(default_factory=list)
    added_indexes: list[str] = field(default_factory=list)
    dropped_indexes: list[str] = field(default_factory=list)
    existing_types: dict[str, TypeEngine] = field(default_factory=dict, repr=False)

    @property
    def is_empty(self) -> bool:
        if self.kind == CREATE:
            return False
        return not (
            self.added_columns
            or self.dropped_columns
            or self.retyped_columns
            or self.relaxed_columns
            or self.added_indexes
            or self.dropped_indexes
        )


class ZohoSchemaReconciler:
    """
    Mantiene el esquema de la tabla de un módulo alineado con su metadata Zoho.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        prefix: Optional[str] = None,
        duplicate_policy: DuplicateFieldPolicy | str | None = None,
        logger=None,
    ) -> None:
        register_notice_level()
        self._engine = engine
        self._prefix = settings.ZOHO_TABLE_PREFIX if prefix is None else prefix
        self._duplicate_policy = DuplicateFieldPolicy(
            duplicate_policy or settings.ZOHO_DUPLICATE_FIELD_POLICY
        )
        self._logger = logger or default_logger.bind(component="schema_sync")

    def set_logger(self, logger) -> None:
        self._logger = logger

    def get_table_name(self, dao: ZohoModuleDao) -> str:
        return get_table_name(self._prefix, dao.get_plural_module_name())

    def build_table(self, dao: ZohoModuleDao) -> Table:
        """
        Esquema deseado de la tabla del módulo.

        Raises:
            UnknownFieldType: antes de tocar la base, si un field no tiene tipo
            DuplicateFieldError: si dos fields colisionan y la política es fail
        """
        table = Table(
            self.get_table_name(dao),
            MetaData(),
            Column(ID_COLUMN, Text, primary_key=True),
        )

        for descriptor in flatten_fields(dao.get_fields(), self._duplicate_policy):
            if descriptor.name.lower() == ID_COLUMN:
                # La columna id la gestiona el copiador, nunca se altera.
                continue
            spec = column_spec_for(descriptor)
            table.append_column(Column(spec.name, spec.type_(), nullable=True))
            if spec.indexed:
                Index(index_name(table.name, spec.name), table.c[spec.name])

        return table

    def plan(self, conn: Connection, desired: Table) -> SchemaChange:
        """Compara el esquema deseado con el de la base."""
        table_name = desired.name
        inspector = inspect(conn)

        if not inspector.has_table(table_name):
            return SchemaChange(
                table_name=table_name,
                kind=CREATE,
                added_columns=[c.name for c in desired.columns if c.name != ID_COLUMN],
                added_indexes=[ix.name for ix in desired.indexes],
            )

        change = SchemaChange(table_name=table_name, kind=ALTER)
        impl = MigrationContext.configure(conn).impl

        existing = {c["name"]: c for c in inspector.get_columns(table_name)}
        wanted = {c.name: c for c in desired.columns if c.name != ID_COLUMN}

        for name, column in wanted.items():
            current = existing.get(name)
            if current is None:
                change.added_columns.append(name)
                continue
            change.existing_types[name] = current["type"]
            if impl.compare_type(Column(name, current["type"]), column):
                change.retyped_columns.append(name)
            elif not current.get("nullable", True):
                change.relaxed_columns.append(name)

        change.dropped_columns = [
            name for name in existing if name != ID_COLUMN and name not in wanted
        ]

        existing_indexes = {ix["name"] for ix in inspector.get_indexes(table_name) if ix.get("name")}
        wanted_indexes = {ix.name for ix in desired.indexes}
        change.added_indexes = sorted(wanted_indexes - existing_indexes)
        change.dropped_indexes = sorted(existing_indexes - wanted_indexes)

        return change

    def reconcile(self, dao: ZohoModuleDao) -> Optional[SchemaChange]:
        """
        Sincroniza el modelo de la tabla con Zoho.

        Returns:
            El cambio aplicado, o None si la tabla ya estaba al día.

        Raises:
            UnknownFieldType, DuplicateFieldError: sin DDL ejecutado
            SchemaApplicationError: falló un statement DDL (sin reintentos)
        """
        desired = self.build_table(dao)
        table_name = desired.name
        self._logger.info(f"Sincronizando modelo de datos de {table_name}")

        with self._engine.begin() as conn:
            change = self.plan(conn, desired)
            if change.is_empty:
                self._logger.info(f"Sin cambios en la estructura de {table_name}")
                return None

            if change.kind == CREATE:
                self._logger.log(NOTICE, f"Creando tabla nueva '{table_name}'.")
            else:
                self._logger.log(
                    NOTICE,
                    f"Cambios detectados en la estructura de {table_name}. Aplicando patch. {change}",
                )

            try:
                self._apply(conn, desired, change)
            except SQLAlchemyError as e:
                raise SchemaApplicationError(table_name, str(e)) from e

        return change

    def _apply(self, conn: Connection, desired: Table, change: SchemaChange) -> None:
        if change.kind == CREATE:
            desired.create(conn)
            return

        indexes = {ix.name: ix for ix in desired.indexes}
        operations = Operations(MigrationContext.configure(conn))

        # Orden: los índices caen antes que sus columnas.
        with operations.batch_alter_table(change.table_name, recreate="auto") as batch:
            for name in change.dropped_indexes:
                batch.drop_index(name)
            for name in change.dropped_columns:
                batch.drop_column(name)
            for name in change.added_columns:
                batch.add_column(Column(name, desired.c[name].type, nullable=True))
            for name in change.retyped_columns + change.relaxed_columns:
                batch.alter_column(
                    name,
                    type_=desired.c[name].type,
                    existing_type=change.existing_types[name],
                    nullable=True,
                )
            for name in change.added_indexes:
                batch.create_index(name, [c.name for c in indexes[name].columns])
