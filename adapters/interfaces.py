"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 저장소 구현체는 이 Protocol을 준수해야 함.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable

from core.domain.models import (
    Challan,
    DiscountType,
    EnrollmentFee,
    FeeStructure,
    HistoryEntry,
    LineItem,
    Transaction,
)
from core.types import LineItemKind


@runtime_checkable
class ILedgerRepository(Protocol):
    """수수료 원장 저장소 인터페이스

    계정, 원장 항목, 이력, 카탈로그(수수료 체계/할인 유형/고지서) 영속화.
    transaction() 안에서 수행된 쓰기는 하나의 단위로 커밋/롤백됨.
    금액은 반드시 Decimal 타입 사용.
    """

    # -------------------------------------------------------------------------
    # 트랜잭션
    # -------------------------------------------------------------------------

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """트랜잭션 범위

        정상 종료 시 커밋, 예외 시 롤백.

        Raises:
            PersistenceConflictError: 쓰기 잠금 획득 실패
        """
        ...

    def snapshot(self) -> AbstractAsyncContextManager[None]:
        """읽기 범위

        커밋된 상태만 보이며, 범위 안의 조회는 같은 시점을 읽음.
        transaction() 안에서 호출하면 안 됨 (재진입 불가).
        """
        ...

    # -------------------------------------------------------------------------
    # 계정
    # -------------------------------------------------------------------------

    async def get_account(self, account_id: str) -> EnrollmentFee | None:
        """계정 조회"""
        ...

    async def get_account_by_enrollment(self, enrollment_id: str) -> EnrollmentFee | None:
        """수강 등록 ID로 계정 조회"""
        ...

    async def list_accounts(self) -> list[EnrollmentFee]:
        """전체 계정 목록"""
        ...

    async def create_account(self, account: EnrollmentFee) -> EnrollmentFee:
        """계정 생성"""
        ...

    async def save_account(self, account: EnrollmentFee, expected_version: int) -> EnrollmentFee:
        """계정 스냅샷 저장 (낙관적 락)

        Args:
            account: 저장할 스냅샷
            expected_version: 읽었을 때의 version

        Returns:
            version이 1 증가한 계정

        Raises:
            PersistenceConflictError: 저장된 version이 expected_version과 다름
        """
        ...

    # -------------------------------------------------------------------------
    # 원장 항목
    # -------------------------------------------------------------------------

    async def list_active_line_items(self, account_id: str, kind: LineItemKind) -> list[LineItem]:
        """활성 원장 항목 목록 (생성순)"""
        ...

    async def get_line_item(self, kind: LineItemKind, item_id: str) -> LineItem | None:
        """원장 항목 조회 (삭제된 항목 포함)"""
        ...

    async def create_line_item(self, item: LineItem) -> LineItem:
        """원장 항목 생성"""
        ...

    async def soft_delete_line_item(
        self,
        kind: LineItemKind,
        item_id: str,
        removed_by: str | None,
        removed_at: datetime,
    ) -> LineItem:
        """원장 항목 소프트 삭제 (재계산 대상에서 제외)"""
        ...

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        """납부 거래 조회"""
        ...

    async def list_transactions(self, account_id: str) -> list[Transaction]:
        """납부 거래 목록 (납부일 내림차순)"""
        ...

    # -------------------------------------------------------------------------
    # 이력
    # -------------------------------------------------------------------------

    async def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        """이력 추가 (append-only)"""
        ...

    async def list_history(self, account_id: str, limit: int = 100, offset: int = 0) -> list[HistoryEntry]:
        """이력 조회 (최신순)"""
        ...

    # -------------------------------------------------------------------------
    # 카탈로그
    # -------------------------------------------------------------------------

    async def get_fee_structure(self, structure_id: str) -> FeeStructure | None:
        ...

    async def list_fee_structures(self, program_campus_id: str | None = None) -> list[FeeStructure]:
        """활성 수수료 체계 목록 (최신순)"""
        ...

    async def save_fee_structure(self, structure: FeeStructure) -> FeeStructure:
        """수수료 체계 UPSERT"""
        ...

    async def get_discount_type(self, discount_type_id: str) -> DiscountType | None:
        ...

    async def list_discount_types(self) -> list[DiscountType]:
        ...

    async def save_discount_type(self, discount_type: DiscountType) -> DiscountType:
        ...

    async def get_challan(self, challan_id: str) -> Challan | None:
        ...

    async def save_challan(self, challan: Challan) -> Challan:
        """고지서 UPSERT"""
        ...
