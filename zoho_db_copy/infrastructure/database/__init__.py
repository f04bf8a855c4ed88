"""
Acceso a la base de datos destino.
"""
from zoho_db_copy.infrastructure.database.session import create_db_engine, normalize_database_url
