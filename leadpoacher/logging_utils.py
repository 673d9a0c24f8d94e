"""
Structured logging helpers for the scraping pipeline.
"""

from __future__ import annotations

import json
import logging
from typing import Any

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def configure_logging(level: str = 'INFO') -> None:
    """
    Install one stream handler on the root logger.
    """

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {'event': event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
