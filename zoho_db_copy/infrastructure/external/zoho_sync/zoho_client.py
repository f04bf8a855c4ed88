"""
Cliente mínimo de la REST API v2 de Zoho CRM (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginación por página (page/per_page)
- rate-limit/backoff (429, 5xx)
- incremental fetch usando el header If-Modified-Since

La autenticación (OAuth, refresh de tokens) queda fuera: el cliente recibe
un access token ya válido.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

import requests
from pydantic import BaseModel, ConfigDict

from zoho_db_copy.core.config import settings
from zoho_db_copy.shared.constants.zoho_constants import ZohoFieldType
from zoho_db_copy.shared.exceptions.sync import RemoteFetchError

from .types import FieldDescriptor, ZohoRecord, ensure_utc

# data_type de la API v2 -> categoría Zoho del mapeo de columnas.
# Los data_type que no están aquí pasan tal cual y fallan al reconciliar.
V2_DATA_TYPES: dict[str, ZohoFieldType] = {
    "text": ZohoFieldType.TEXT,
    "textarea": ZohoFieldType.TEXT_AREA,
    "email": ZohoFieldType.EMAIL,
    "phone": ZohoFieldType.PHONE,
    "website": ZohoFieldType.WEBSITE,
    "picklist": ZohoFieldType.PICK_LIST,
    "multiselectpicklist": ZohoFieldType.MULTISELECT_PICK_LIST,
    "autonumber": ZohoFieldType.AUTO_NUMBER,
    "integer": ZohoFieldType.INTEGER,
    "bigint": ZohoFieldType.BIG_INT,
    "double": ZohoFieldType.DOUBLE,
    "percent": ZohoFieldType.PERCENT,
    "currency": ZohoFieldType.CURRENCY,
    "decimal": ZohoFieldType.DECIMAL,
    "boolean": ZohoFieldType.BOOLEAN,
    "date": ZohoFieldType.DATE,
    "datetime": ZohoFieldType.DATETIME,
    "lookup": ZohoFieldType.LOOKUP,
    "ownerlookup": ZohoFieldType.OWNER_LOOKUP,
    "formula": ZohoFieldType.FORMULA,
}


@dataclass(frozen=True)
class ZohoCredentials:
    access_token: str


class ZohoFieldMetadata(BaseModel):
    """Entrada de /settings/fields."""

    model_config = ConfigDict(extra="ignore")

    api_name: str
    data_type: str
    custom_field: bool = False

    def to_descriptor(self) -> FieldDescriptor:
        category = V2_DATA_TYPES.get(self.data_type)
        return FieldDescriptor(
            name=self.api_name,
            remote_type=category.value if category else self.data_type,
        )


def _isoformat(dt: datetime) -> str:
    """Serializa datetime a ISO8601 con offset, como espera If-Modified-Since."""
    return ensure_utc(dt).replace(microsecond=0).isoformat()


class ZohoCrmClient:
    """
    Cliente HTTP de Zoho CRM.

    Importante:
    - No hace cast de tipos: eso lo decide ZohoCrmModuleDao con la metadata.
    - Un 204 (sin contenido) es una página vacía, no un error.
    """

    def __init__(
        self,
        credentials: ZohoCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        max_retries: Optional[int] = None,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._creds = credentials
        self._base_url = (base_url or settings.ZOHO_API_BASE_URL).rstrip("/")
        self._timeout_s = timeout_s or settings.ZOHO_TIMEOUT_S
        self._max_retries = settings.ZOHO_MAX_RETRIES if max_retries is None else max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    def get_fields(self, module: str) -> list[ZohoFieldMetadata]:
        payload = self._request_json("GET", "/settings/fields", query={"module": module})
        return [ZohoFieldMetadata.model_validate(f) for f in payload.get("fields") or []]

    def get_records(
        self,
        module: str,
        *,
        page: int,
        per_page: int,
        modified_since: Optional[datetime] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"page": page, "per_page": per_page}
        if sort_by:
            query["sort_by"] = sort_by
        if sort_order:
            query["sort_order"] = sort_order
        if fields:
            query["fields"] = ",".join(fields)

        headers = {}
        if modified_since is not None:
            headers["If-Modified-Since"] = _isoformat(modified_since)

        payload = self._request_json("GET", f"/{module}", query=query, headers=headers)
        return payload.get("data") or []

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 304/204: sin registros.
        - 4xx (no 429): error inmediato (config/auth mal).
        """
        url = f"{self._base_url}{path}"
        all_headers = {"Authorization": f"Zoho-oauthtoken {self._creds.access_token}"}
        all_headers.update(headers or {})

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=dict(query),
                    headers=all_headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise RemoteFetchError(f"Zoho request falló: {e}") from e

            if resp.status_code in (204, 304):
                return {}

            if 200 <= resp.status_code < 300:
                return resp.json()

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise RemoteFetchError(
                        f"Zoho error {resp.status_code} tras {attempt} reintentos: {resp.text}"
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                time.sleep(sleep_s)
                continue

            # Errores no recuperables
            raise RemoteFetchError(f"Zoho request falló {resp.status_code}: {resp.text}")

        raise RemoteFetchError(f"Zoho request sin respuesta: {url}")


def _parse_value(category: Optional[str], raw: Any) -> Any:
    if raw is None or not isinstance(raw, str):
        return raw
    if category == ZohoFieldType.DATETIME.value:
        # Las columnas DateTime se guardan naive, en UTC.
        return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00"))).replace(tzinfo=None)
    if category == ZohoFieldType.DATE.value:
        return date.fromisoformat(raw)
    return raw


class ZohoCrmModuleDao:
    """
    DAO HTTP de un módulo (Leads, Contacts, ...). Implementa ZohoModuleDao.
    """

    def __init__(
        self,
        client: ZohoCrmClient,
        module_name: str,
        plural_module_name: Optional[str] = None,
    ) -> None:
        self._client = client
        self._module_name = module_name
        self._plural_module_name = plural_module_name or module_name
        self._fields: Optional[dict[str, list[FieldDescriptor]]] = None

    def get_module_name(self) -> str:
        return self._module_name

    def get_plural_module_name(self) -> str:
        return self._plural_module_name

    def get_fields(self) -> dict[str, list[FieldDescriptor]]:
        if self._fields is None:
            fields: dict[str, list[FieldDescriptor]] = {"standard": [], "custom": []}
            for meta in self._client.get_fields(self._module_name):
                fields["custom" if meta.custom_field else "standard"].append(meta.to_descriptor())
            self._fields = fields
        return self._fields

    def get_paginated_records(
        self,
        sort_column: Optional[str],
        sort_order: Optional[str],
        since: Optional[datetime],
        select_columns: Optional[Sequence[str]],
        page_size: int,
        offset: int,
    ) -> list[ZohoRecord]:
        categories = {
            d.name: d.remote_type for group in self.get_fields().values() for d in group
        }
        rows = self._client.get_records(
            self._module_name,
            page=offset // page_size + 1,
            per_page=page_size,
            modified_since=since,
            sort_by=sort_column,
            sort_order=sort_order,
            fields=select_columns,
        )

        records = []
        for row in rows:
            record_id = row.get("id")
            if not record_id:
                # Caso raro; preferimos fallar temprano y visible.
                raise RemoteFetchError(
                    "Zoho devolvió un record sin 'id'", module=self._module_name, offset=offset
                )
            values = {
                name: _parse_value(categories.get(name), value)
                for name, value in row.items()
                if name != "id"
            }
            records.append(ZohoRecord(zoho_id=str(record_id), values=values))
        return records
