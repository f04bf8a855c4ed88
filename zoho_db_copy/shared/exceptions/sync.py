"""
Excepciones de la sincronización Zoho CRM -> base de datos.

Ninguna se reintenta internamente: el caller decide si relanza la copia completa.
"""
from typing import Any, Optional

from zoho_db_copy.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores de sincronización."""

    def __init__(self, message: str, error_code: str = "SYNC_ERROR", details=None):
        super().__init__(message=message, error_code=error_code, details=details)


class SyncConfigError(SyncException):
    """Error de configuración del pipeline."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="SYNC_CONFIG_ERROR")


class UnknownFieldType(SyncException):
    """Un field de Zoho tiene una categoría sin tipo de columna asociado."""

    def __init__(self, field_name: str, field_type: Any):
        super().__init__(
            message=f'Unknown type "{field_type}" for field "{field_name}"',
            error_code="UNKNOWN_FIELD_TYPE",
            details={"field": field_name, "type": str(field_type)}
        )
        self.field_name = field_name
        self.field_type = field_type


class DuplicateFieldError(SyncException):
    """Dos fields colisionan al normalizar su nombre a minúsculas."""

    def __init__(self, field_name: str, previous_name: str):
        super().__init__(
            message=f'Fields "{previous_name}" y "{field_name}" colisionan (case-insensitive)',
            error_code="DUPLICATE_FIELD",
            details={"field": field_name, "previous": previous_name}
        )


class SchemaApplicationError(SyncException):
    """Falló un statement DDL al reconciliar el esquema de una tabla."""

    def __init__(self, table_name: str, reason: str):
        super().__init__(
            message=f"No se pudo aplicar el esquema de '{table_name}': {reason}",
            error_code="SCHEMA_APPLICATION_ERROR",
            details={"table": table_name}
        )
        self.table_name = table_name


class SchemaMismatchError(SyncException):
    """La tabla tiene una columna que ningún field de Zoho describe."""

    def __init__(self, table_name: str, column_name: str):
        super().__init__(
            message=(
                f"La columna '{column_name}' de '{table_name}' no corresponde a ningún field. "
                f"Ejecuta la reconciliación del esquema antes de copiar."
            ),
            error_code="SCHEMA_MISMATCH",
            details={"table": table_name, "column": column_name}
        )


class RecordWriteError(SyncException):
    """Falló la lectura/escritura de un registro; la transacción se revierte."""

    def __init__(self, table_name: str, record_id: Optional[str], reason: str):
        super().__init__(
            message=f"Error escribiendo el registro '{record_id}' en '{table_name}': {reason}",
            error_code="RECORD_WRITE_ERROR",
            details={"table": table_name, "record_id": record_id}
        )
        self.table_name = table_name
        self.record_id = record_id


class RemoteFetchError(SyncException):
    """Falló la obtención de una página de registros de Zoho."""

    def __init__(self, message: str, module: Optional[str] = None, offset: Optional[int] = None):
        super().__init__(
            message=message,
            error_code="REMOTE_FETCH_ERROR",
            details={"module": module, "offset": offset}
        )
        self.module = module
        self.offset = offset
