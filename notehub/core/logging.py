"""
Configuración de logging para la aplicación e integración con Uvicorn.
"""
import logging

LOGGER_ROOT = "notehub"


def setup_logging(level: str = "INFO") -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", LOGGER_ROOT):
        logging.getLogger(name).setLevel(lvl)


def get_logger(name: str) -> logging.Logger:
    """Logger hijo de `notehub` (p. ej. get_logger("notes") -> notehub.notes)."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")
