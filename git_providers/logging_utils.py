"""Logging utilities for git-providers."""

from __future__ import annotations

import json
import logging
import sys

from git_providers.models import LOGGER_NAME

ACTION_ICONS = {
    "created": "+",
    "updated": "~",
    "already_set": "·",
    "deleted": "-",
}


class StructuredFormatter(logging.Formatter):
    """Formatter for plain lines or JSON lines; reconcile outcomes render from their ActionResult."""

    def __init__(self, json_mode: bool = False):
        super().__init__()
        self.json_mode = json_mode

    def format(self, record: logging.LogRecord) -> str:
        result = getattr(record, "action_result", None)
        if self.json_mode:
            if result is not None:
                return json.dumps(result.to_dict())
            return json.dumps({"level": record.levelname, "message": record.getMessage()})
        if result is not None:
            icon = ACTION_ICONS.get(result.action, "?")
            return f"[{record.levelname:<7}] {icon} {record.getMessage()}"
        return f"[{record.levelname:<7}] {record.getMessage()}"


def setup_logging(json_mode: bool = False, verbose: bool = False) -> logging.Logger:
    """Send the package logger to stderr, replacing any handler a previous call installed."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler.formatter, StructuredFormatter):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(json_mode=json_mode))
    logger.addHandler(handler)
    return logger
