"""
Copia de módulos de Zoho CRM hacia tablas relacionales.
"""
__version__ = "1.0.0"
