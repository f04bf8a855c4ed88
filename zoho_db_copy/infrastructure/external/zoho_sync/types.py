"""
Tipos y utilidades puras para el pipeline Zoho CRM -> base de datos.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from operator import methodcaller
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Float, Integer, Numeric, Text
from sqlalchemy.types import TypeEngine

from zoho_db_copy.shared.constants.zoho_constants import DuplicateFieldPolicy, ZohoFieldType
from zoho_db_copy.shared.exceptions.sync import DuplicateFieldError, UnknownFieldType

ID_COLUMN = "id"


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Las columnas DateTime se guardan sin zona; un valor naive se interpreta como UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


Accessor = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Metadata de un field de un módulo Zoho.

    - name: nombre del field (también nombre de la columna)
    - remote_type: categoría Zoho ("Text", "Lookup", ...)
    - getter: nombre del método del record que devuelve el valor.
      Si es None, el valor se lee con record.get(name).
    """

    name: str
    remote_type: str
    getter: Optional[str] = None

    def accessor(self) -> Accessor:
        if self.getter:
            return methodcaller(self.getter)
        name = self.name
        return lambda record: record.get(name)


@dataclass(frozen=True)
class ZohoRecord:
    """Registro Zoho mínimo para copia."""

    zoho_id: str
    values: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def get_zoho_id(self) -> str:
        return self.zoho_id


@dataclass(frozen=True)
class ColumnSpec:
    """Columna deseada en la tabla destino."""

    name: str
    type_: type[TypeEngine]
    indexed: bool = False


# Categoría Zoho -> (tipo de columna, indexada)
COLUMN_TYPES: dict[ZohoFieldType, tuple[type[TypeEngine], bool]] = {
    ZohoFieldType.LOOKUP_ID: (Text, True),
    ZohoFieldType.LOOKUP: (Text, True),
    ZohoFieldType.OWNER_LOOKUP: (Text, True),
    # Un Formula puede devolver cualquier tipo, pero no hay forma de saber cuál.
    ZohoFieldType.FORMULA: (Text, False),
    ZohoFieldType.DATETIME: (DateTime, False),
    ZohoFieldType.DATE: (Date, False),
    ZohoFieldType.BOOLEAN: (Boolean, False),
    ZohoFieldType.TEXT_AREA: (Text, False),
    ZohoFieldType.PHONE: (Text, False),
    ZohoFieldType.AUTO_NUMBER: (Text, False),
    ZohoFieldType.TEXT: (Text, False),
    ZohoFieldType.URL: (Text, False),
    ZohoFieldType.EMAIL: (Text, False),
    ZohoFieldType.WEBSITE: (Text, False),
    ZohoFieldType.PICK_LIST: (Text, False),
    ZohoFieldType.MULTISELECT_PICK_LIST: (Text, False),
    ZohoFieldType.DOUBLE: (Float, False),
    ZohoFieldType.PERCENT: (Float, False),
    ZohoFieldType.INTEGER: (Integer, False),
    ZohoFieldType.BIG_INT: (BigInteger, False),
    ZohoFieldType.CURRENCY: (Numeric, False),
    ZohoFieldType.DECIMAL: (Numeric, False),
}


def column_spec_for(descriptor: FieldDescriptor) -> ColumnSpec:
    """
    Traduce un FieldDescriptor a la columna destino.

    Raises:
        UnknownFieldType: si la categoría no está en COLUMN_TYPES
    """
    try:
        field_type = ZohoFieldType(descriptor.remote_type)
    except ValueError:
        raise UnknownFieldType(descriptor.name, descriptor.remote_type) from None

    type_, indexed = COLUMN_TYPES[field_type]
    return ColumnSpec(name=descriptor.name, type_=type_, indexed=indexed)


def flatten_fields(
    categories: Mapping[str, Sequence[FieldDescriptor]] | Iterable[Sequence[FieldDescriptor]],
    policy: DuplicateFieldPolicy | str = DuplicateFieldPolicy.FAIL,
) -> list[FieldDescriptor]:
    """
    Aplana los fields agrupados por sección en una sola lista.

    Los nombres se comparan en minúsculas. Con policy=last_wins el último
    descriptor reemplaza al anterior (conservando su posición); con fail
    se levanta DuplicateFieldError.
    """
    policy = DuplicateFieldPolicy(policy)
    groups = categories.values() if isinstance(categories, Mapping) else categories

    by_name: dict[str, FieldDescriptor] = {}
    for group in groups:
        for descriptor in group:
            key = descriptor.name.lower()
            previous = by_name.get(key)
            if previous is not None and policy is DuplicateFieldPolicy.FAIL:
                raise DuplicateFieldError(descriptor.name, previous.name)
            by_name[key] = descriptor

    return list(by_name.values())


def serialize_value(value: Any) -> Any:
    """
    Los valores compuestos (listas, dicts) se guardan como JSON en columnas de texto.
    json.loads(serialize_value(v)) == v para cualquier valor devuelto por la API.
    """
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False)
    return value
