"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.

원장 서비스는 계정별 잠금을 보유하므로 앱 수명 동안 하나만 생성하여
app.state에 보관 (web.app lifespan 참고). 테스트에서는
app.dependency_overrides로 인메모리 저장소 기반 서비스로 교체.
"""

from fastapi import Request

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import Settings
from core.ledger.catalog import FeeCatalogService
from core.ledger.journal import HistoryJournal
from core.ledger.service import FeeLedgerService
from core.storage.fee_store import FeeStore


def build_services(
    db: SQLiteAdapter,
    settings: Settings,
) -> tuple[FeeLedgerService, FeeCatalogService]:
    """연결된 DB로 원장/카탈로그 서비스 생성

    Args:
        db: 쓰기 가능한 SQLiteAdapter (연결 완료 상태)
        settings: 애플리케이션 설정

    Returns:
        (FeeLedgerService, FeeCatalogService)
    """
    store = FeeStore(db)
    ledger = FeeLedgerService(
        store,
        HistoryJournal(store),
        max_conflict_retries=settings.ledger.max_conflict_retries,
        retry_delay_sec=settings.ledger.retry_delay_sec,
    )
    return ledger, FeeCatalogService(store)


def get_ledger_service(request: Request) -> FeeLedgerService:
    """원장 서비스 반환"""
    return request.app.state.ledger_service


def get_catalog_service(request: Request) -> FeeCatalogService:
    """카탈로그 서비스 반환"""
    return request.app.state.catalog_service
