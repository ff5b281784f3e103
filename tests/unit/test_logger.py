"""Unit tests for observability.logger: command and actor context in rendered entries."""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from structlog.contextvars import clear_contextvars, get_contextvars

from marketplace_catalog.observability.logger import (
    bind_actor,
    bind_command,
    get_logger,
    setup_logging,
    unbind_actor,
)

LOGGER_NAME = "marketplace_catalog.tests.logger"


@pytest.fixture
def json_log(caplog):
    setup_logging("INFO", "json")
    clear_contextvars()
    with caplog.at_level(logging.INFO):
        yield get_logger(LOGGER_NAME)
    clear_contextvars()
    structlog.reset_defaults()


def _rendered(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == LOGGER_NAME]


class TestCommandContext:
    def test_every_entry_carries_command_and_trace(self, json_log, caplog):
        trace_id = bind_command("add-product")

        json_log.info("product_saved", product_id=1)
        json_log.warning("slow_write")

        first, second = _rendered(caplog)
        assert first["event"] == "product_saved"
        assert first["product_id"] == 1
        assert first["command"] == "add-product"
        assert first["trace_id"] == second["trace_id"] == trace_id
        assert second["level"] == "warning"

    def test_new_command_drops_previous_context(self, json_log):
        bind_command("register")
        bind_actor(1, "root")

        trace_id = bind_command("list-products")

        assert get_contextvars() == {"command": "list-products", "trace_id": trace_id}

    def test_entries_outside_a_command_share_one_trace(self, json_log, caplog):
        json_log.info("startup")
        json_log.info("ready")

        first, second = _rendered(caplog)
        assert first["trace_id"]
        assert first["trace_id"] == second["trace_id"]
        assert "command" not in first


class TestActorContext:
    def test_actor_bound_until_unbound(self, json_log, caplog):
        bind_command("delete-product")
        bind_actor(3, "root")
        json_log.info("deleting")
        unbind_actor()
        json_log.info("done")

        during, after = _rendered(caplog)
        assert during["actor_id"] == 3
        assert during["actor"] == "root"
        assert "actor_id" not in after
        assert after["command"] == "delete-product"
