"""
Configuración de fixtures para pytest.
"""
from datetime import datetime
from typing import Any, Optional

import pytest
from loguru import logger
from sqlalchemy import create_engine, event

from zoho_db_copy.infrastructure.external.zoho_sync.types import FieldDescriptor, ZohoRecord


class FakeDao:
    """DAO en memoria: pagina por offset y filtra por Last_Activity_Time >= since."""

    def __init__(
        self,
        fields: dict[str, list[FieldDescriptor]],
        records: Optional[list[Any]] = None,
        module: str = "Leads",
        plural: Optional[str] = None,
        fail_at_offset: Optional[int] = None,
    ) -> None:
        self.fields = fields
        self.records = list(records or [])
        self.module = module
        self.plural = plural or module
        self.fail_at_offset = fail_at_offset
        self.calls: list[dict[str, Any]] = []

    def get_module_name(self) -> str:
        return self.module

    def get_plural_module_name(self) -> str:
        return self.plural

    def get_fields(self):
        return self.fields

    def get_paginated_records(self, sort_column, sort_order, since, select_columns, page_size, offset):
        self.calls.append({"since": since, "page_size": page_size, "offset": offset})
        if self.fail_at_offset is not None and offset >= self.fail_at_offset:
            raise ConnectionError("Zoho no responde")

        records = self.records
        if since is not None:
            records = [
                r for r in records
                if (r.get("Last_Activity_Time") or datetime.min) >= since
            ]
        return records[offset:offset + page_size]


class RecordingListener:
    def __init__(self, name: str = "listener", log: Optional[list] = None) -> None:
        self.name = name
        self.log = log if log is not None else []
        self.inserts: list[tuple[dict, Any]] = []
        self.updates: list[tuple[dict, dict, Any]] = []

    def on_insert(self, data, dao) -> None:
        self.inserts.append((dict(data), dao))
        self.log.append((self.name, "insert", data["id"]))

    def on_update(self, data, previous, dao) -> None:
        self.updates.append((dict(data), dict(previous), dao))
        self.log.append((self.name, "update", data["id"]))


def make_fields(**types: str) -> dict[str, list[FieldDescriptor]]:
    return {"Information": [FieldDescriptor(name=name, remote_type=t) for name, t in types.items()]}


def make_records(count: int, start: int = 0, **values: Any) -> list[ZohoRecord]:
    return [
        ZohoRecord(zoho_id=f"rec{i}", values={"Email": f"lead{i}@example.com", "Score": i, **values})
        for i in range(start, start + count)
    ]


@pytest.fixture(autouse=True, scope="session")
def _quiet_logs():
    """Sin sink por defecto: los tests agregan el suyo si necesitan los mensajes."""
    logger.remove()
    yield


@pytest.fixture
def engine(tmp_path):
    """Engine SQLite en archivo, uno por test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'zoho.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def ddl_statements(engine):
    """Lista de statements DDL ejecutados sobre el engine."""
    statements: list[str] = []

    @event.listens_for(engine, "before_cursor_execute")
    def _capture(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith(("CREATE", "ALTER", "DROP")):
            statements.append(statement.strip())

    return statements


@pytest.fixture
def commit_counter(engine):
    """Cuenta los COMMIT emitidos sobre el engine (activar con counter['on'] = True)."""
    counter = {"on": False, "commits": 0}

    @event.listens_for(engine, "commit")
    def _count(conn):
        if counter["on"]:
            counter["commits"] += 1

    return counter


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
