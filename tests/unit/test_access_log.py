import logging
from types import SimpleNamespace
import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.core.logging_config import build_logging_config
from app.middleware.logging import LoggingMiddleware

def make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    @app.get("/inventory/variance")
    async def variance(request: Request):
        request.state.current_user = SimpleNamespace(id=7, role="manager")
        return []

    @app.get("/inventory/export/counts")
    async def export():
        return JSONResponse({"ok": False, "code": "forbidden"}, status_code=403)

    return app

@pytest.fixture
def access_records(monkeypatch, caplog):
    monkeypatch.setattr(logging.getLogger("access"), "propagate", True)
    caplog.set_level(logging.INFO, logger="access")
    return caplog

class TestLoggingMiddleware:

    async def test_logs_caller_and_scope(self, access_records):
        transport = httpx.ASGITransport(app=make_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/inventory/variance", params={"event_id": 3, "warehouse_code": "MAIN"})

        assert response.status_code == 200
        assert "X-Process-Time" in response.headers
        [record] = [r for r in access_records.records if r.name == "access"]
        message = record.getMessage()
        assert record.levelno == logging.INFO
        assert "[event_id=3 warehouse_code=MAIN]" in message
        assert "Caller: user 7 (manager)" in message

    async def test_rejected_request_is_a_warning(self, access_records):
        transport = httpx.ASGITransport(app=make_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/inventory/export/counts")

        assert response.status_code == 403
        [record] = [r for r in access_records.records if r.name == "access"]
        assert record.levelno == logging.WARNING
        assert "Caller: anonymous" in record.getMessage()

class TestLoggingConfig:

    def test_inventory_file_collects_service_logs(self, tmp_path):
        config = build_logging_config(str(tmp_path), "DEBUG", "2026-10-18")

        assert config["handlers"]["inventory_file"]["filename"].endswith("inventory-2026-10-18.log")
        assert config["loggers"]["app.services.inventory"]["handlers"] == ["inventory_file"]
        assert config["loggers"][""]["level"] == "DEBUG"
