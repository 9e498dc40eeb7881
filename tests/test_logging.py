import json
import logging

import pytest

from moneyflow.core.logging import add_user_context, configure_logging, set_user_context


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    set_user_context(None)


def test_user_context_added_when_set():
    set_user_context(42)
    try:
        assert add_user_context(None, "info", {"event": "x"})["user_id"] == 42
    finally:
        set_user_context(None)


def test_user_context_absent_for_anonymous_work():
    assert "user_id" not in add_user_context(None, "info", {"event": "sweep"})


def test_json_lines_carry_level_logger_and_user(capsys, restore_root_logger):
    configure_logging("INFO", "json")
    set_user_context(7)

    logging.getLogger("moneyflow.services.ledger_service").warning("Skipping reversal of card 3")

    line = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert line["event"] == "Skipping reversal of card 3"
    assert line["level"] == "warning"
    assert line["logger"] == "moneyflow.services.ledger_service"
    assert line["user_id"] == 7


def test_level_filters_and_noise_loggers_quieted(capsys, restore_root_logger):
    configure_logging("WARNING", "text")

    logging.getLogger("moneyflow.cli").info("not shown")

    assert capsys.readouterr().err == ""
    assert logging.getLogger("sqlalchemy.engine.Engine").level == logging.WARNING
