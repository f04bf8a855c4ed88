from __future__ import annotations

import pytest

from zoho_db_copy.infrastructure.external.zoho_sync.naming import (
    get_table_name,
    underscored,
    upper_camelize,
)


@pytest.mark.parametrize(
    "prefix, plural, expected",
    [
        ("zoho_", "Leads", "zoho_leads"),
        ("zoho_", "Sales Orders", "zoho_sales_orders"),
        ("zoho_", "Price_Books", "zoho_price_books"),
        ("crm-", "PriceBooks", "crm_price_books"),
        ("", "Contacts", "contacts"),
    ],
)
def test_table_name_is_deterministic(prefix, plural, expected) -> None:
    assert get_table_name(prefix, plural) == expected
    assert get_table_name(prefix, plural) == get_table_name(prefix, plural)


def test_upper_camelize_and_underscored() -> None:
    assert upper_camelize("zoho_sales orders") == "ZohoSalesOrders"
    assert underscored("ZohoSalesOrders") == "zoho_sales_orders"
