"""
FastAPI 애플리케이션

라우터 등록 및 앱 설정.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.logging import setup_logging
from web.dependencies import build_services
from web.routes import fee_structures, fees, health, history
from web.routes.health import API_VERSION

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리

    시작 시 DB 스키마 초기화 후 원장 서비스를 하나 생성하여 app.state에 보관.
    """
    settings = get_settings()
    setup_logging("web", console_level=settings.log_level, file_level=settings.log_level)

    db = SQLiteAdapter(settings.db_path, busy_timeout_ms=settings.config.database.busy_timeout_ms)
    await db.connect()
    await init_schema(db)

    app.state.db = db
    app.state.ledger_service, app.state.catalog_service = build_services(db, settings)
    logger.info("Web: 원장 서비스 초기화 완료", extra={"db_path": str(settings.db_path)})

    try:
        yield
    finally:
        # 종료 시 - 리소스 정리
        await db.close()
        logger.info("Web: DB 연결 종료 완료")


app = FastAPI(
    title="Fee Ledger API",
    description="수강 수수료 원장 (할인/부과금/이월미납/납부) API",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS 설정 (개발용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =========================================================================
# API 라우터 등록
# =========================================================================

app.include_router(health.router)
app.include_router(fee_structures.router)
app.include_router(fees.router)
app.include_router(history.router)
