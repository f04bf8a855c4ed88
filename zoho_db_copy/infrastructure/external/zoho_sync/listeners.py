"""
Listeners notificados después de cada insert/update de un registro.

Se invocan de forma síncrona, en orden de registro, una vez por registro.
"""

from __future__ import annotations

from typing import Any, Protocol

from .dao import ZohoModuleDao


class ZohoChangeListener(Protocol):
    def on_insert(self, data: dict[str, Any], dao: ZohoModuleDao) -> None:
        ...

    def on_update(self, data: dict[str, Any], previous: dict[str, Any], dao: ZohoModuleDao) -> None:
        """`data` incluye la columna id aunque el UPDATE no la escriba."""
        ...
