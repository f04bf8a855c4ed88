"""
Nombre determinista de la tabla destino de un módulo.
"""

from __future__ import annotations

import re

_SEPARATOR_RE = re.compile(r"[-_\s]+(.)?")
_UPPER_RE = re.compile(r"\B([A-Z])")
_DELIMITER_RE = re.compile(r"[-_\s]+")


def upper_camelize(value: str) -> str:
    """'zoho_sales orders' -> 'ZohoSalesOrders'"""
    camel = _SEPARATOR_RE.sub(lambda m: (m.group(1) or "").upper(), value.strip())
    return camel[:1].upper() + camel[1:]


def underscored(value: str) -> str:
    """'ZohoSalesOrders' -> 'zoho_sales_orders'"""
    delimited = _UPPER_RE.sub(r"-\1", value.strip()).lower()
    return _DELIMITER_RE.sub("_", delimited)


def get_table_name(prefix: str, plural_module_name: str) -> str:
    """
    Prefijo + nombre plural del módulo, normalizado a upper camel case y luego
    a snake case, para que procesos independientes acuerden el mismo nombre.

    get_table_name("zoho_", "Leads") == "zoho_leads"
    """
    return underscored(upper_camelize(prefix + plural_module_name))
