"""Configuração básica de logging da API."""

from __future__ import annotations

import logging

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configura o root logger uma única vez e ajusta o nível dos loggers da app."""

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    logging.getLogger("ingresso").setLevel(settings.log_level)
