"""Tests for logging setup and the credential mask."""

from __future__ import annotations

import logging

import structlog

from unidep.core.config import Settings
from unidep.core.logging import MASK, mask_secrets, setup_logging


def test_mask_secrets():
    event = {"event": "repositories.lookup", "auth": ("ci", "s3cret"), "password": "", "url": "https://x"}
    masked = mask_secrets(None, "info", dict(event))
    assert masked["auth"] == MASK
    assert masked["password"] == ""
    assert masked["url"] == "https://x"


def test_level_from_settings():
    setup_logging(Settings(log_level="warning"))
    assert logging.getLogger("unidep").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_level_override():
    setup_logging(Settings(log_level="WARNING"), level="debug")
    assert logging.getLogger("unidep").level == logging.DEBUG


def test_json_format_renders_bound_context(capsys):
    setup_logging(Settings(log_level="INFO", log_format="json"))
    with structlog.contextvars.bound_contextvars(command="scan"):
        structlog.get_logger("unidep.test").info("test.event", password="hunter2")
    line = capsys.readouterr().err.strip().splitlines()[-1]
    assert '"command": "scan"' in line
    assert '"password": "***"' in line
    assert "hunter2" not in line
