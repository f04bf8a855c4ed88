"""
Excepciones del copiador.
"""
from zoho_db_copy.shared.exceptions.base import AppException
from zoho_db_copy.shared.exceptions.sync import (
    DuplicateFieldError,
    RecordWriteError,
    RemoteFetchError,
    SchemaApplicationError,
    SchemaMismatchError,
    SyncConfigError,
    SyncException,
    UnknownFieldType,
)
