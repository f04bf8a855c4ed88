from __future__ import annotations

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
import requests

from zoho_db_copy.infrastructure.external.zoho_sync import zoho_client
from zoho_db_copy.infrastructure.external.zoho_sync.zoho_client import (
    ZohoCredentials,
    ZohoCrmClient,
    ZohoCrmModuleDao,
    ZohoFieldMetadata,
)
from zoho_db_copy.shared.exceptions.sync import RemoteFetchError

FIELDS_PAYLOAD = {
    "fields": [
        {"api_name": "Email", "data_type": "email", "custom_field": False},
        {"api_name": "Owner", "data_type": "ownerlookup", "custom_field": False},
        {"api_name": "Last_Activity_Time", "data_type": "datetime", "custom_field": False},
        {"api_name": "Birthday", "data_type": "date", "custom_field": True},
        {"api_name": "Score__c", "data_type": "integer", "custom_field": True, "length": 9},
    ]
}


def _response(status_code: int, payload=None, headers=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    resp.headers = headers or {}
    resp.text = text
    return resp


@pytest.fixture
def sleeps(monkeypatch):
    calls: list[float] = []
    monkeypatch.setattr(zoho_client.time, "sleep", calls.append)
    return calls


def _client(*responses, max_retries: int = 3) -> tuple[ZohoCrmClient, MagicMock]:
    session = MagicMock()
    session.request.side_effect = list(responses)
    client = ZohoCrmClient(
        ZohoCredentials(access_token="tok-123"),
        session=session,
        base_url="https://zoho.test/crm/v2/",
        timeout_s=5,
        max_retries=max_retries,
    )
    return client, session


class TestZohoCrmClient:
    def test_get_records_sends_auth_paging_and_if_modified_since(self, sleeps) -> None:
        client, session = _client(_response(200, {"data": [{"id": "1"}]}))

        rows = client.get_records(
            "Leads", page=3, per_page=200, modified_since=datetime(2024, 1, 2, 12, 30, 1)
        )

        assert rows == [{"id": "1"}]
        kwargs = session.request.call_args.kwargs
        assert kwargs["url"] == "https://zoho.test/crm/v2/Leads"
        assert kwargs["params"] == {"page": 3, "per_page": 200}
        assert kwargs["headers"]["Authorization"] == "Zoho-oauthtoken tok-123"
        assert kwargs["headers"]["If-Modified-Since"] == "2024-01-02T12:30:01+00:00"
        assert kwargs["timeout"] == 5

    def test_no_content_is_an_empty_page(self, sleeps) -> None:
        client, _ = _client(_response(204))

        assert client.get_records("Leads", page=1, per_page=200) == []

    def test_rate_limit_honors_retry_after(self, sleeps) -> None:
        client, session = _client(
            _response(429, headers={"Retry-After": "2"}),
            _response(200, {"data": []}),
        )

        assert client.get_records("Leads", page=1, per_page=200) == []
        assert sleeps == [2.0]
        assert session.request.call_count == 2

    def test_server_errors_exhaust_retries(self, sleeps) -> None:
        client, session = _client(
            _response(503, text="down"), _response(503, text="down"), max_retries=1
        )

        with pytest.raises(RemoteFetchError):
            client.get_records("Leads", page=1, per_page=200)
        assert session.request.call_count == 2
        assert len(sleeps) == 1

    def test_client_error_fails_without_retry(self, sleeps) -> None:
        client, session = _client(_response(401, text="INVALID_TOKEN"))

        with pytest.raises(RemoteFetchError) as exc_info:
            client.get_records("Leads", page=1, per_page=200)
        assert "401" in exc_info.value.message
        assert session.request.call_count == 1
        assert sleeps == []

    def test_transport_errors_are_wrapped(self, sleeps) -> None:
        client, _ = _client(requests.ConnectionError("reset by peer"))

        with pytest.raises(RemoteFetchError):
            client.get_fields("Leads")


class TestFieldMetadata:
    def test_known_data_type_maps_to_category(self) -> None:
        descriptor = ZohoFieldMetadata(api_name="Owner", data_type="ownerlookup").to_descriptor()
        assert (descriptor.name, descriptor.remote_type) == ("Owner", "OwnerLookup")

    def test_unknown_data_type_passes_through(self) -> None:
        descriptor = ZohoFieldMetadata(api_name="Photo", data_type="profileimage").to_descriptor()
        assert descriptor.remote_type == "profileimage"


class TestZohoCrmModuleDao:
    def test_fields_are_grouped_and_fetched_once(self, sleeps) -> None:
        client, session = _client(_response(200, FIELDS_PAYLOAD))
        dao = ZohoCrmModuleDao(client, "Leads")

        fields = dao.get_fields()
        dao.get_fields()

        assert [d.name for d in fields["standard"]] == ["Email", "Owner", "Last_Activity_Time"]
        assert [d.name for d in fields["custom"]] == ["Birthday", "Score__c"]
        assert session.request.call_count == 1

    def test_offset_maps_to_page_and_values_are_parsed(self, sleeps) -> None:
        row = {
            "id": 4150868000000225013,
            "Email": "ana@example.com",
            "Owner": {"name": "Ana", "id": "u1"},
            "Last_Activity_Time": "2024-01-02T14:30:00+02:00",
            "Birthday": "1990-05-17",
        }
        client, session = _client(_response(200, FIELDS_PAYLOAD), _response(200, {"data": [row]}))
        dao = ZohoCrmModuleDao(client, "Leads", "Leads")

        records = dao.get_paginated_records(None, None, None, None, 200, 400)

        assert session.request.call_args.kwargs["params"] == {"page": 3, "per_page": 200}
        record = records[0]
        assert record.get_zoho_id() == "4150868000000225013"
        assert record.get("Email") == "ana@example.com"
        assert record.get("Owner") == {"name": "Ana", "id": "u1"}
        assert record.get("Last_Activity_Time") == datetime(2024, 1, 2, 12, 30, 0)
        assert record.get("Birthday") == date(1990, 5, 17)

    def test_row_without_id_is_rejected(self, sleeps) -> None:
        client, _ = _client(_response(200, FIELDS_PAYLOAD), _response(200, {"data": [{"Email": "x"}]}))
        dao = ZohoCrmModuleDao(client, "Leads")

        with pytest.raises(RemoteFetchError) as exc_info:
            dao.get_paginated_records(None, None, None, None, 200, 0)
        assert exc_info.value.module == "Leads"
