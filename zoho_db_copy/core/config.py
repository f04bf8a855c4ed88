"""
Configuracion central del copiador Zoho CRM -> base de datos.
Gestiona variables de entorno y valores por defecto.
"""
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Clase de configuracion del copiador.
    Lee variables de entorno (o .env) y proporciona valores por defecto.

    Los componentes (reconciliador, copiador) toman sus defaults de aqui,
    pero todos aceptan overrides explicitos en el constructor.
    """

    # Base de datos destino
    DATABASE_URL: str = Field(default="sqlite:///./zoho_copy.db")
    DB_ECHO: bool = Field(default=False)
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Copia de modulos
    ZOHO_TABLE_PREFIX: str = Field(default="zoho_")
    ZOHO_PAGE_SIZE: int = Field(default=1000, gt=0)
    ZOHO_LAST_ACTIVITY_COLUMN: str = Field(default="Last_Activity_Time")
    # Que hacer si dos fields colisionan al normalizar a minusculas
    ZOHO_DUPLICATE_FIELD_POLICY: Literal["fail", "last_wins"] = Field(default="fail")

    # API de Zoho CRM (el token lo obtiene la capa de autenticacion)
    ZOHO_API_BASE_URL: str = Field(default="https://www.zohoapis.com/crm/v2")
    ZOHO_ACCESS_TOKEN: str = Field(default="")
    ZOHO_TIMEOUT_S: int = Field(default=30)
    ZOHO_MAX_RETRIES: int = Field(default=6)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="")

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


# Instancia global de configuracion
settings = Settings()
