"""
Mock 원장 저장소

테스트용 인메모리 ILedgerRepository 구현.
transaction()은 시작 시점 상태를 복사해 두었다가 예외 시 복원.
"""

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, AsyncIterator

from core.constants import Defaults
from core.domain.errors import NotFoundError, PersistenceConflictError
from core.domain.models import (
    Challan,
    DiscountType,
    EnrollmentFee,
    FeeStructure,
    HistoryEntry,
    LineItem,
    Transaction,
    mark_removed,
)
from core.types import LineItemKind


class InMemoryLedgerRepository:
    """인메모리 원장 저장소

    ILedgerRepository Protocol 구현.

    사용 예시:
    ```python
    repo = InMemoryLedgerRepository()
    await repo.save_fee_structure(structure)

    # 다음 save_account 2회를 충돌로 실패시킴 (재시도 테스트)
    repo.inject_conflicts(2)
    ```
    """

    def __init__(self) -> None:
        self.accounts: dict[str, EnrollmentFee] = {}
        self.line_items: dict[LineItemKind, dict[str, LineItem]] = {kind: {} for kind in LineItemKind}
        self.history: list[tuple[int, HistoryEntry]] = []
        self.fee_structures: dict[str, FeeStructure] = {}
        self.discount_types: dict[str, DiscountType] = {}
        self.challans: dict[str, Challan] = {}

        self._seq = 0
        self._tx_lock = asyncio.Lock()
        self._pending_conflicts = 0

        # 테스트 검증용 카운터
        self.commit_count = 0
        self.rollback_count = 0

    def inject_conflicts(self, count: int) -> None:
        """다음 count번의 save_account를 PersistenceConflictError로 실패시킴"""
        self._pending_conflicts = count

    def _snapshot(self) -> dict[str, Any]:
        return {
            "accounts": dict(self.accounts),
            "line_items": {kind: dict(items) for kind, items in self.line_items.items()},
            "history": list(self.history),
            "fee_structures": dict(self.fee_structures),
            "discount_types": dict(self.discount_types),
            "challans": dict(self.challans),
            "seq": self._seq,
        }

    def _restore(self, state: dict[str, Any]) -> None:
        self.accounts = state["accounts"]
        self.line_items = state["line_items"]
        self.history = state["history"]
        self.fee_structures = state["fee_structures"]
        self.discount_types = state["discount_types"]
        self.challans = state["challans"]
        self._seq = state["seq"]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """트랜잭션 (예외 시 시작 시점 상태로 복원)"""
        async with self._tx_lock:
            # 모델은 frozen이므로 컨테이너만 복사하면 충분
            state = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(state)
                self.rollback_count += 1
                raise
            self.commit_count += 1

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        """읽기 범위 (진행 중인 트랜잭션이 끝난 뒤 진입)"""
        async with self._tx_lock:
            yield

    # -------------------------------------------------------------------------
    # 계정
    # -------------------------------------------------------------------------

    async def get_account(self, account_id: str) -> EnrollmentFee | None:
        return self.accounts.get(account_id)

    async def get_account_by_enrollment(self, enrollment_id: str) -> EnrollmentFee | None:
        for account in self.accounts.values():
            if account.enrollment_id == enrollment_id:
                return account
        return None

    async def list_accounts(self) -> list[EnrollmentFee]:
        return sorted(self.accounts.values(), key=lambda a: a.created_at)

    async def create_account(self, account: EnrollmentFee) -> EnrollmentFee:
        if await self.get_account_by_enrollment(account.enrollment_id) is not None:
            raise ValueError(f"Duplicate enrollment_id: {account.enrollment_id}")
        self.accounts[account.id] = account
        return account

    async def save_account(self, account: EnrollmentFee, expected_version: int) -> EnrollmentFee:
        current = self.accounts.get(account.id)
        if current is None:
            raise NotFoundError(f"Enrollment fee with ID {account.id} not found")

        if self._pending_conflicts > 0:
            self._pending_conflicts -= 1
            raise PersistenceConflictError(
                f"Enrollment fee {account.id} was modified concurrently (injected)"
            )

        if current.version != expected_version:
            raise PersistenceConflictError(
                f"Enrollment fee {account.id} was modified concurrently "
                f"(expected version {expected_version}, found {current.version})"
            )

        saved = replace(account, version=expected_version + 1)
        self.accounts[account.id] = saved
        return saved

    # -------------------------------------------------------------------------
    # 원장 항목
    # -------------------------------------------------------------------------

    async def list_active_line_items(self, account_id: str, kind: LineItemKind) -> list[LineItem]:
        return [
            item
            for item in self.line_items[kind].values()
            if item.account_id == account_id and item.is_active
        ]

    async def get_line_item(self, kind: LineItemKind, item_id: str) -> LineItem | None:
        return self.line_items[kind].get(item_id)

    async def create_line_item(self, item: LineItem) -> LineItem:
        self.line_items[item.kind][item.id] = item
        return item

    async def soft_delete_line_item(
        self,
        kind: LineItemKind,
        item_id: str,
        removed_by: str | None,
        removed_at: datetime,
    ) -> LineItem:
        if kind == LineItemKind.TRANSACTION:
            raise ValueError("Transactions cannot be removed")

        item = self.line_items[kind].get(item_id)
        if item is None or not item.is_active:
            raise NotFoundError(f"{kind.value.title()} with ID {item_id} not found or already removed")

        removed = mark_removed(item, removed_by, removed_at)  # type: ignore[arg-type]
        self.line_items[kind][item_id] = removed
        return removed

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self.line_items[LineItemKind.TRANSACTION].get(transaction_id)  # type: ignore[return-value]

    async def list_transactions(self, account_id: str) -> list[Transaction]:
        transactions = [
            item
            for item in self.line_items[LineItemKind.TRANSACTION].values()
            if item.account_id == account_id
        ]
        # dict 삽입 순서를 보조 키로 사용 (같은 납부일이면 나중 기록 먼저)
        indexed = list(enumerate(transactions))
        indexed.sort(key=lambda pair: (pair[1].date, pair[0]), reverse=True)  # type: ignore[union-attr]
        return [t for _, t in indexed]  # type: ignore[misc]

    # -------------------------------------------------------------------------
    # 이력
    # -------------------------------------------------------------------------

    async def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        self._seq += 1
        self.history.append((self._seq, copy.deepcopy(entry)))
        return entry

    async def list_history(
        self,
        account_id: str,
        limit: int = Defaults.HISTORY_PAGE_SIZE,
        offset: int = 0,
    ) -> list[HistoryEntry]:
        rows = [(seq, e) for seq, e in self.history if e.account_id == account_id]
        rows.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [e for _, e in rows[offset:offset + limit]]

    # -------------------------------------------------------------------------
    # 카탈로그
    # -------------------------------------------------------------------------

    async def get_fee_structure(self, structure_id: str) -> FeeStructure | None:
        return self.fee_structures.get(structure_id)

    async def list_fee_structures(self, program_campus_id: str | None = None) -> list[FeeStructure]:
        structures = [
            s
            for s in self.fee_structures.values()
            if s.is_active and (program_campus_id is None or s.program_campus_id == program_campus_id)
        ]
        return sorted(structures, key=lambda s: s.created_at, reverse=True)

    async def save_fee_structure(self, structure: FeeStructure) -> FeeStructure:
        self.fee_structures[structure.id] = structure
        return structure

    async def get_discount_type(self, discount_type_id: str) -> DiscountType | None:
        return self.discount_types.get(discount_type_id)

    async def list_discount_types(self) -> list[DiscountType]:
        return sorted(self.discount_types.values(), key=lambda d: d.name)

    async def save_discount_type(self, discount_type: DiscountType) -> DiscountType:
        self.discount_types[discount_type.id] = discount_type
        return discount_type

    async def get_challan(self, challan_id: str) -> Challan | None:
        return self.challans.get(challan_id)

    async def save_challan(self, challan: Challan) -> Challan:
        self.challans[challan.id] = challan
        return challan
