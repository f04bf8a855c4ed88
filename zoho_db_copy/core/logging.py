"""
Configuracion de logging (loguru).

Severidades usadas por el copiador:
- DEBUG: detalle por registro (insert/update)
- INFO: progreso y estado
- NOTICE: cambios relevantes (tabla creada, esquema alterado, copia FULL)
"""
import sys

from loguru import logger

from zoho_db_copy.core.config import settings

NOTICE = "NOTICE"


def register_notice_level() -> None:
    """
    Registra el nivel NOTICE (entre INFO y SUCCESS) si aun no existe.
    loguru no permite redefinir un nivel, por eso se consulta primero.
    """
    try:
        logger.level(NOTICE)
    except ValueError:
        logger.level(NOTICE, no=22, color="<cyan><bold>")


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Reemplaza los sinks por defecto de loguru.

    Args:
        level: Nivel minimo (por defecto settings.LOG_LEVEL)
        log_file: Archivo de log opcional (por defecto settings.LOG_FILE)
    """
    register_notice_level()
    level = level or settings.LOG_LEVEL
    log_file = settings.LOG_FILE if log_file is None else log_file

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[component]} | {message}",
    )
    logger.configure(extra={"component": "-"})

    if log_file:
        logger.add(
            log_file,
            rotation="500 MB",
            retention="10 days",
            level=level,
        )

    logger.info(f"Logging configurado (nivel={level})")
