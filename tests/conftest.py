"""
pytest 공통 fixture 정의

인메모리 저장소 기반 원장 서비스와 기본 카탈로그
(기본 금액 1000의 수수료 체계, 장학금 할인 유형) 제공.
"""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.mock.ledger_repository import InMemoryLedgerRepository
from core.config.loader import Settings
from core.domain.models import DiscountType, EnrollmentFee, FeeComponent, FeeStructure
from core.ledger.catalog import FeeCatalogService
from core.ledger.journal import HistoryJournal
from core.ledger.service import FeeLedgerService
from core.types import FeeComponentType

STRUCTURE_ID = "fs-grade5"
DISCOUNT_TYPE_ID = "dt-scholarship"
ADMIN = "admin-1"


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_settings():
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()


def make_structure(
    structure_id: str = STRUCTURE_ID,
    amounts: tuple[str, ...] = ("800", "200"),
    program_campus_id: str = "pc-001",
) -> FeeStructure:
    """구성 항목 금액으로 수수료 체계 생성 (기본: 800 + 200 = 1000)"""
    types = [FeeComponentType.TUITION, FeeComponentType.LIBRARY, FeeComponentType.MISCELLANEOUS]
    components = tuple(
        FeeComponent(name=f"Component {i}", type=types[min(i, 2)], amount=Decimal(amount))
        for i, amount in enumerate(amounts)
    )
    return FeeStructure(
        id=structure_id,
        name=f"Structure {structure_id}",
        program_campus_id=program_campus_id,
        components=components,
        created_by=ADMIN,
    )


@pytest_asyncio.fixture
async def repo() -> InMemoryLedgerRepository:
    """기본 카탈로그가 등록된 인메모리 저장소"""
    repository = InMemoryLedgerRepository()
    await repository.save_fee_structure(make_structure())
    await repository.save_discount_type(DiscountType(id=DISCOUNT_TYPE_ID, name="Scholarship"))
    return repository


@pytest.fixture
def journal(repo: InMemoryLedgerRepository) -> HistoryJournal:
    return HistoryJournal(repo)


@pytest.fixture
def service(repo: InMemoryLedgerRepository, journal: HistoryJournal) -> FeeLedgerService:
    """재시도 대기 없는 원장 서비스"""
    return FeeLedgerService(repo, journal, max_conflict_retries=3, retry_delay_sec=0)


@pytest.fixture
def catalog(repo: InMemoryLedgerRepository) -> FeeCatalogService:
    return FeeCatalogService(repo)


@pytest_asyncio.fixture
async def account(service: FeeLedgerService) -> EnrollmentFee:
    """기본 금액 1000의 PENDING 계정"""
    result = await service.create_enrollment_fee("enr-1", STRUCTURE_ID, ADMIN)
    return result.unwrap().account


@pytest.fixture
def structure_factory():
    """make_structure 함수 (테스트에서 추가 수수료 체계 생성용)"""
    return make_structure


@pytest.fixture
def discount_type_id() -> str:
    return DISCOUNT_TYPE_ID
