"""Tests des logs structurés émis par le moteur."""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from opencatan.engine import InvariantViolation
from opencatan.engine.actions import EndTurn
from opencatan.engine.phases import Phase
from opencatan.logging_config import configure_logging, get_logger

from game_test_utils import force_phase, make_engine


@pytest.fixture
def restore_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def test_rejection_and_phase_change_are_logged():
    engine = make_engine()
    force_phase(engine, Phase.MAIN, "alice")

    with capture_logs() as logs:
        engine.submit_action("bob", EndTurn())
        engine.submit_action("alice", EndTurn())

    rejected = [entry for entry in logs if entry["event"] == "action_rejected"]
    assert rejected[0]["reason"] == "NotYourTurn"
    assert rejected[0]["player_id"] == "bob"
    assert rejected[0]["log_level"] == "info"

    changed = [entry for entry in logs if entry["event"] == "phase_changed"]
    assert changed[0]["source"] == "main"
    assert changed[0]["target"] == "roll"
    assert changed[0]["player_id"] == "bob"


def test_invariant_violation_is_critical():
    engine = make_engine()
    force_phase(engine, Phase.MAIN, "alice")
    engine.state.bank["WOOL"] -= 1

    with capture_logs() as logs, pytest.raises(InvariantViolation):
        engine.submit_action("alice", EndTurn())

    assert [entry["log_level"] for entry in logs if entry["event"] == "invariant_violation"] == ["critical"]


@pytest.mark.parametrize("environment", ["development", "production"])
def test_configure_logging(environment, restore_structlog, capsys):
    logger = configure_logging(environment)
    logger.info("configured", environment=environment)

    output = capsys.readouterr().out
    assert "configured" in output
    if environment == "production":
        assert '"environment": "production"' in output


def test_production_lines_carry_service_and_module(restore_structlog, capsys):
    configure_logging("production")
    get_logger("opencatan.engine.engine").info("action_applied", version=3)

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert line["service"] == "opencatan"
    assert line["environment"] == "production"
    assert line["logger"] == "opencatan.engine.engine"
    assert line["version"] == 3


def test_explicit_level_filters_lower_levels(restore_structlog, capsys):
    configure_logging("production", level=logging.WARNING)
    logger = get_logger()
    logger.info("hidden")
    logger.warning("shown")

    output = capsys.readouterr().out
    assert "hidden" not in output
    assert '"logger": "opencatan"' in output
