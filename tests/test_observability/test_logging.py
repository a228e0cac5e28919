"""Tests for logging setup and cycle context."""

import pytest
import structlog

from sponsor_sync.observability.logging import (
    bind_context,
    build_processors,
    clear_context,
    cycle_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()


def test_bind_and_clear_context():
    bind_context(snapshot_date="2024-06-01", cycle="ingest")
    assert structlog.contextvars.get_contextvars() == {
        "snapshot_date": "2024-06-01",
        "cycle": "ingest",
    }

    clear_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_cycle_context_clears_later_bindings():
    with cycle_context(cycle="ingest"):
        bind_context(snapshot_date="2024-06-01")
        assert structlog.contextvars.get_contextvars() == {
            "cycle": "ingest",
            "snapshot_date": "2024-06-01",
        }

    assert structlog.contextvars.get_contextvars() == {}


def test_cycle_context_drops_stale_fields():
    bind_context(snapshot_date="2024-05-31")

    with cycle_context(cycle="ingest"):
        assert structlog.contextvars.get_contextvars() == {"cycle": "ingest"}


def test_cycle_context_clears_on_error():
    with pytest.raises(RuntimeError):
        with cycle_context(cycle="ingest"):
            raise RuntimeError("boom")

    assert structlog.contextvars.get_contextvars() == {}


def test_json_renderer_selected():
    assert isinstance(build_processors(json_output=True)[-1], structlog.processors.JSONRenderer)
    assert isinstance(build_processors(json_output=False)[-1], structlog.dev.ConsoleRenderer)


def test_setup_logging_accepts_overrides():
    setup_logging("DEBUG", json_output=True)
    assert structlog.is_configured()
