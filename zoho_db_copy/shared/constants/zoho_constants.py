"""
Constantes relacionadas con Zoho CRM.
"""
from enum import Enum


class ZohoFieldType(str, Enum):
    """
    Categorías de fields de Zoho CRM soportadas.
    Lista completa: https://www.zoho.com/crm/help/customization/custom-fields.html
    """
    LOOKUP_ID = "Lookup ID"
    LOOKUP = "Lookup"
    OWNER_LOOKUP = "OwnerLookup"
    FORMULA = "Formula"
    DATETIME = "DateTime"
    DATE = "Date"
    BOOLEAN = "Boolean"
    TEXT_AREA = "TextArea"
    BIG_INT = "BigInt"
    PHONE = "Phone"
    AUTO_NUMBER = "Auto Number"
    TEXT = "Text"
    URL = "URL"
    EMAIL = "Email"
    WEBSITE = "Website"
    PICK_LIST = "Pick List"
    MULTISELECT_PICK_LIST = "Multiselect Pick List"
    DOUBLE = "Double"
    PERCENT = "Percent"
    INTEGER = "Integer"
    CURRENCY = "Currency"
    DECIMAL = "Decimal"


class DuplicateFieldPolicy(str, Enum):
    """Resolución de fields cuyo nombre coincide ignorando mayúsculas."""
    FAIL = "fail"
    LAST_WINS = "last_wins"
