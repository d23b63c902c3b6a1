# ==============================
# Logging Bootstrap Tests
# ==============================
from __future__ import annotations

import json
import logging

import pytest

from conftest import ContextTemplate
from pict_template.config.schema import LoggingConfig, Settings
from pict_template.host.environment import Pict
from pict_template.logging.logger import JsonLineFormatter, LogContext, bootstrap_logger, with_context


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("pict.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_fields() -> None:
    line = JsonLineFormatter().format(_record("hello", product="Tp", template_hash="Record.x"))
    payload = json.loads(line)
    assert payload == {
        "level": "INFO",
        "logger": "pict.test",
        "msg": "hello",
        "product": "Tp",
        "template_hash": "Record.x",
    }


def test_json_formatter_skips_unset_fields() -> None:
    payload = json.loads(JsonLineFormatter().format(_record("plain", provider=None)))
    assert "provider" not in payload


def test_bootstrap_logger_configures_root(restore_root_logger) -> None:
    settings = Settings(logging=LoggingConfig(level="debug"))
    log = bootstrap_logger(settings)
    root = logging.getLogger()
    assert log.name == "pict"
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonLineFormatter)

    # idempotent: no duplicate handlers
    bootstrap_logger(settings)
    assert len(logging.getLogger().handlers) == 1


def test_bootstrap_logger_plain_and_silent(restore_root_logger) -> None:
    bootstrap_logger(Settings(logging=LoggingConfig(json_lines=False)))
    assert not isinstance(logging.getLogger().handlers[0].formatter, JsonLineFormatter)

    bootstrap_logger(Settings(logging=LoggingConfig(console=False)))
    assert logging.getLogger().handlers == []


def test_with_context_attaches_fields(caplog) -> None:
    caplog.set_level(logging.INFO, logger="pict")
    adapter = with_context(logging.getLogger("pict"), LogContext(product="Tp", provider="P"))
    adapter.info("rendered")
    record = caplog.records[-1]
    assert record.product == "Tp"
    assert record.provider == "P"


def test_host_and_provider_log_registration(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="pict")
    pict = Pict()
    pict.add_template(ContextTemplate)
    messages = [r.getMessage() for r in caplog.records]
    assert any("Added pattern {{...}}" in m for m in messages)
    assert any("Added template provider ContextTemplate as ContextMustache" in m for m in messages)


def test_provider_log_records_carry_provider_context(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="pict")
    pict = Pict()
    pict.add_template(ContextTemplate, service_hash="Ctx")
    record = next(r for r in caplog.records if r.getMessage() == "Added pattern {{...}}")
    assert record.provider == "ContextTemplate"
    assert record.service_hash == "Ctx"
    assert record.name == "pict.template.Ctx"
