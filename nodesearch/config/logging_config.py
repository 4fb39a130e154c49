"""Configuration centralisée du logging pour nodesearch."""

import os
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

def setup_logging(log_file: Optional[str] = None, console: bool = True, level: Optional[str] = None):
    """Configure le logging global pour l'application.

    Args:
        log_file: chemin du fichier de logs (sinon `LOG_FILE`, vide = pas de fichier)
        console: ajoute un handler console
        level: niveau forcé (sinon `LOG_LEVEL`)
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_format = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    if log_file is None:
        log_file = os.getenv("LOG_FILE", "logs/nodesearch.log")

    handlers = []
    if log_file:
        # Créer le dossier de logs s'il n'existe pas
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
        )
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=log_format,
        handlers=handlers or None,
    )

    loggers_config = {
        'nodesearch.core.discovery': log_level,
        'nodesearch.core.search': log_level,
        'httpx': 'WARNING',  # Une ligne par requête sinon
        'redis': 'WARNING'
    }

    for logger_name, logger_level in loggers_config.items():
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, logger_level, logging.INFO))

def get_logger(name: str) -> logging.Logger:
    """Retourne un logger configuré pour le module donné."""
    return logging.getLogger(name)
