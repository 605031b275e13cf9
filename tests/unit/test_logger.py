"""Tests for structured log output from the chat pipeline."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from profile_bot.api.middleware.request_logger import RequestLoggerMiddleware
from profile_bot.core.orchestrator import ChatOrchestrator, RequestContext
from profile_bot.lib.logger import SimpleFormatter, StructuredFormatter
from profile_bot.lib.rate_limiter import RateLimiter
from profile_bot.storage.knowledge_store import KnowledgeBase
from profile_bot.storage.kv_store import InMemoryKVStore


def records_with_fields(caplog, logger_name):
    return [
        record
        for record in caplog.records
        if record.name == logger_name and hasattr(record, "extra_fields")
    ]


def test_structured_formatter_merges_extra_fields():
    record = logging.LogRecord("profile_bot.test", logging.INFO, __file__, 1, "done", None, None)
    record.extra_fields = {"request_id": "req-1", "status": 200}

    data = json.loads(StructuredFormatter().format(record))

    assert data["message"] == "done"
    assert data["level"] == "INFO"
    assert data["request_id"] == "req-1"
    assert data["status"] == 200


def test_simple_formatter_ignores_extra_fields():
    record = logging.LogRecord("profile_bot.test", logging.INFO, __file__, 1, "done", None, None)
    record.extra_fields = {"status": 200}

    assert SimpleFormatter().format(record).endswith("profile_bot.test: done")


@pytest.mark.asyncio
async def test_orchestrator_logs_state_and_entries_found(caplog, knowledge_base, clock):
    generator = MagicMock()
    generator.generate = AsyncMock(return_value="Jane knows Python.")
    orchestrator = ChatOrchestrator(
        knowledge_base, RateLimiter(InMemoryKVStore(clock=clock), clock=clock), generator
    )
    caplog.set_level(logging.INFO, logger="profile_bot.core.orchestrator")

    await orchestrator.handle(
        b'{"message": "Python experience"}',
        RequestContext(session_id="visitor-1", ip_address="10.0.0.1"),
    )

    records = records_with_fields(caplog, "profile_bot.core.orchestrator")
    assert records
    data = json.loads(StructuredFormatter().format(records[-1]))
    assert data["session_id"] == "visitor-1"
    assert data["state"] == "generated"
    assert data["entries_found"] >= 1
    assert "retrieval_ms" in data


@pytest.mark.asyncio
async def test_orchestrator_logs_no_match(caplog, knowledge_entries, clock):
    inferred_only = KnowledgeBase.from_entries(e for e in knowledge_entries if not e.is_verified)
    orchestrator = ChatOrchestrator(
        inferred_only, RateLimiter(InMemoryKVStore(clock=clock), clock=clock), MagicMock()
    )
    caplog.set_level(logging.INFO, logger="profile_bot.core.orchestrator")

    await orchestrator.handle(
        b'{"message": "xyz qqq"}', RequestContext(session_id="visitor-1", ip_address="10.0.0.1")
    )

    fields = records_with_fields(caplog, "profile_bot.core.orchestrator")[-1].extra_fields
    assert fields["state"] == "retrieved"
    assert fields["entries_found"] == 0


def test_request_logger_emits_request_fields(caplog):
    app = FastAPI()
    app.add_middleware(RequestLoggerMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    caplog.set_level(logging.INFO, logger="profile_bot.api.middleware.request_logger")
    with TestClient(app) as client:
        response = client.get("/ping", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
    records = records_with_fields(caplog, "profile_bot.api.middleware.request_logger")
    assert len(records) == 1

    data = json.loads(StructuredFormatter().format(records[0]))
    assert data["request_id"] == "req-42"
    assert data["status"] == 200
    assert data["path"] == "/ping"
    assert data["latency_ms"] >= 0
    assert "retry_after" not in data
