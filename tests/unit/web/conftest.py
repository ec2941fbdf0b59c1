"""
Web 테스트 공통 fixture

인메모리 원장 서비스로 의존성을 교체한 ASGI 클라이언트.
lifespan은 실행되지 않으므로 DB 연결 없음.
"""

import httpx
import pytest_asyncio

from core.ledger.catalog import FeeCatalogService
from core.ledger.service import FeeLedgerService
from web.app import app
from web.dependencies import get_catalog_service, get_ledger_service


@pytest_asyncio.fixture
async def client(service: FeeLedgerService, catalog: FeeCatalogService) -> httpx.AsyncClient:
    app.dependency_overrides[get_ledger_service] = lambda: service
    app.dependency_overrides[get_catalog_service] = lambda: catalog

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
