"""
FeeStore - 수수료 원장 저장소 (SQLite)

ILedgerRepository의 SQLite 구현.
계정, 원장 항목, 이력, 수수료 체계/할인 유형/고지서를 저장.

트랜잭션:
- transaction()은 BEGIN IMMEDIATE로 시작 (DB 단위 쓰기 직렬화)
- 쓰기 잠금을 얻지 못하면 PersistenceConflictError
- 개별 메서드는 트랜잭션을 열지 않음 (호출자가 transaction()으로 묶음)
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncIterator

import aiosqlite

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Defaults
from core.domain.errors import NotFoundError, PersistenceConflictError
from core.domain.models import (
    Arrear,
    Challan,
    Charge,
    Discount,
    DiscountType,
    EnrollmentFee,
    FeeComponent,
    FeeStructure,
    HistoryEntry,
    LineItem,
    Transaction,
)
from core.types import FeeStructureStatus, HistoryAction, LineItemKind, PaymentStatus
from core.utils.timezone import parse_date, parse_datetime, to_iso

logger = logging.getLogger(__name__)


# 항목 종류별 테이블 (삭제 가능 항목은 removed_at 컬럼 보유)
_LINE_ITEM_TABLES: dict[LineItemKind, str] = {
    LineItemKind.DISCOUNT: "fee_discount",
    LineItemKind.CHARGE: "fee_charge",
    LineItemKind.ARREAR: "fee_arrear",
    LineItemKind.TRANSACTION: "fee_transaction",
}

_ACCOUNT_COLUMNS = """
    id, enrollment_id, fee_structure_id,
    base_amount, discounted_amount, final_amount, payment_status,
    due_date, payment_method, notes,
    version, created_by, created_at, updated_at
"""

_LINE_ITEM_COLUMNS: dict[LineItemKind, str] = {
    LineItemKind.DISCOUNT: """
        id, account_id, discount_type_id, amount, reason, approved_by,
        created_by, created_at, removed_at, removed_by
    """,
    LineItemKind.CHARGE: """
        id, account_id, name, amount, reason, due_date,
        created_by, created_at, removed_at, removed_by
    """,
    LineItemKind.ARREAR: """
        id, account_id, amount, reason, previous_fee_id, due_date,
        created_by, created_at, removed_at, removed_by
    """,
    LineItemKind.TRANSACTION: """
        id, account_id, amount, method, txn_date, reference, notes, challan_id,
        created_by, created_at
    """,
}

_STRUCTURE_COLUMNS = """
    id, name, description, program_campus_id, academic_cycle_id, term_id,
    components_json, is_recurring, recurring_interval, status,
    created_by, created_at, updated_at
"""

_CHALLAN_COLUMNS = """
    id, account_id, total_amount, paid_amount, payment_status, due_date,
    created_by, created_at, updated_at
"""


def _is_lock_error(error: aiosqlite.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


# =========================================================================
# 행 → 모델 변환
# =========================================================================

def _row_to_account(row: tuple[Any, ...]) -> EnrollmentFee:
    return EnrollmentFee(
        id=row[0],
        enrollment_id=row[1],
        fee_structure_id=row[2],
        base_amount=Decimal(row[3]),
        discounted_amount=Decimal(row[4]),
        final_amount=Decimal(row[5]),
        payment_status=PaymentStatus(row[6]),
        due_date=parse_date(row[7]),
        payment_method=row[8],
        notes=row[9],
        version=row[10],
        created_by=row[11],
        created_at=parse_datetime(row[12]),
        updated_at=parse_datetime(row[13]),
    )


def _row_to_line_item(kind: LineItemKind, row: tuple[Any, ...]) -> LineItem:
    if kind == LineItemKind.DISCOUNT:
        return Discount(
            id=row[0],
            account_id=row[1],
            discount_type_id=row[2],
            amount=Decimal(row[3]),
            reason=row[4],
            approved_by=row[5],
            created_by=row[6],
            created_at=parse_datetime(row[7]),
            removed_at=parse_datetime(row[8]),
            removed_by=row[9],
        )
    if kind == LineItemKind.CHARGE:
        return Charge(
            id=row[0],
            account_id=row[1],
            name=row[2],
            amount=Decimal(row[3]),
            reason=row[4],
            due_date=parse_date(row[5]),
            created_by=row[6],
            created_at=parse_datetime(row[7]),
            removed_at=parse_datetime(row[8]),
            removed_by=row[9],
        )
    if kind == LineItemKind.ARREAR:
        return Arrear(
            id=row[0],
            account_id=row[1],
            amount=Decimal(row[2]),
            reason=row[3],
            previous_fee_id=row[4],
            due_date=parse_date(row[5]),
            created_by=row[6],
            created_at=parse_datetime(row[7]),
            removed_at=parse_datetime(row[8]),
            removed_by=row[9],
        )
    return Transaction(
        id=row[0],
        account_id=row[1],
        amount=Decimal(row[2]),
        method=row[3],
        date=parse_datetime(row[4]),
        reference=row[5],
        notes=row[6],
        challan_id=row[7],
        created_by=row[8],
        created_at=parse_datetime(row[9]),
    )


def _line_item_params(item: LineItem) -> tuple[Any, ...]:
    if isinstance(item, Discount):
        return (
            item.id, item.account_id, item.discount_type_id, str(item.amount),
            item.reason, item.approved_by,
            item.created_by, to_iso(item.created_at), to_iso(item.removed_at), item.removed_by,
        )
    if isinstance(item, Charge):
        return (
            item.id, item.account_id, item.name, str(item.amount),
            item.reason, to_iso(item.due_date),
            item.created_by, to_iso(item.created_at), to_iso(item.removed_at), item.removed_by,
        )
    if isinstance(item, Arrear):
        return (
            item.id, item.account_id, str(item.amount), item.reason,
            item.previous_fee_id, to_iso(item.due_date),
            item.created_by, to_iso(item.created_at), to_iso(item.removed_at), item.removed_by,
        )
    return (
        item.id, item.account_id, str(item.amount), item.method,
        to_iso(item.date), item.reference, item.notes, item.challan_id,
        item.created_by, to_iso(item.created_at),
    )


def _row_to_structure(row: tuple[Any, ...]) -> FeeStructure:
    components = tuple(FeeComponent.from_dict(c) for c in json.loads(row[6]))
    return FeeStructure(
        id=row[0],
        name=row[1],
        description=row[2],
        program_campus_id=row[3],
        academic_cycle_id=row[4],
        term_id=row[5],
        components=components,
        is_recurring=bool(row[7]),
        recurring_interval=row[8],
        status=FeeStructureStatus(row[9]),
        created_by=row[10],
        created_at=parse_datetime(row[11]),
        updated_at=parse_datetime(row[12]),
    )


def _row_to_challan(row: tuple[Any, ...]) -> Challan:
    return Challan(
        id=row[0],
        account_id=row[1],
        total_amount=Decimal(row[2]),
        paid_amount=Decimal(row[3]),
        payment_status=PaymentStatus(row[4]),
        due_date=parse_date(row[5]),
        created_by=row[6],
        created_at=parse_datetime(row[7]),
        updated_at=parse_datetime(row[8]),
    )


class FeeStore:
    """수수료 원장 저장소

    Args:
        db: SQLiteAdapter 인스턴스 (쓰기 가능)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)
        store = FeeStore(db)

        async with store.transaction():
            account = await store.get_account(account_id)
            ...
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """쓰기 트랜잭션 (BEGIN IMMEDIATE)

        Raises:
            PersistenceConflictError: 쓰기 잠금 획득 실패 (database is locked)
        """
        try:
            async with self.db.transaction(immediate=True):
                yield
        except aiosqlite.OperationalError as e:
            if _is_lock_error(e):
                raise PersistenceConflictError(f"Database is busy: {e}") from e
            raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        """읽기 범위 (커밋된 상태만 보임)"""
        try:
            async with self.db.snapshot():
                yield
        except aiosqlite.OperationalError as e:
            if _is_lock_error(e):
                raise PersistenceConflictError(f"Database is busy: {e}") from e
            raise

    # =========================================================================
    # 계정
    # =========================================================================

    async def get_account(self, account_id: str) -> EnrollmentFee | None:
        row = await self.db.fetchone(
            f"SELECT {_ACCOUNT_COLUMNS} FROM enrollment_fee WHERE id = ?",
            (account_id,),
        )
        return _row_to_account(row) if row else None

    async def get_account_by_enrollment(self, enrollment_id: str) -> EnrollmentFee | None:
        row = await self.db.fetchone(
            f"SELECT {_ACCOUNT_COLUMNS} FROM enrollment_fee WHERE enrollment_id = ?",
            (enrollment_id,),
        )
        return _row_to_account(row) if row else None

    async def list_accounts(self) -> list[EnrollmentFee]:
        rows = await self.db.fetchall(
            f"SELECT {_ACCOUNT_COLUMNS} FROM enrollment_fee ORDER BY created_at"
        )
        return [_row_to_account(row) for row in rows]

    async def create_account(self, account: EnrollmentFee) -> EnrollmentFee:
        """계정 생성"""
        await self.db.execute(
            f"""
            INSERT INTO enrollment_fee ({_ACCOUNT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account.id,
                account.enrollment_id,
                account.fee_structure_id,
                str(account.base_amount),
                str(account.discounted_amount),
                str(account.final_amount),
                account.payment_status.value,
                to_iso(account.due_date),
                account.payment_method,
                account.notes,
                account.version,
                account.created_by,
                to_iso(account.created_at),
                to_iso(account.updated_at),
            ),
        )
        return account

    async def save_account(self, account: EnrollmentFee, expected_version: int) -> EnrollmentFee:
        """계정 스냅샷 저장 (version 검사)

        Args:
            account: 저장할 계정
            expected_version: 읽었을 때의 version

        Returns:
            version + 1 된 계정

        Raises:
            NotFoundError: 계정 없음
            PersistenceConflictError: version 불일치
        """
        cursor = await self.db.execute(
            """
            UPDATE enrollment_fee SET
                fee_structure_id = ?,
                base_amount = ?,
                discounted_amount = ?,
                final_amount = ?,
                payment_status = ?,
                due_date = ?,
                payment_method = ?,
                notes = ?,
                updated_at = ?,
                version = version + 1
            WHERE id = ? AND version = ?
            """,
            (
                account.fee_structure_id,
                str(account.base_amount),
                str(account.discounted_amount),
                str(account.final_amount),
                account.payment_status.value,
                to_iso(account.due_date),
                account.payment_method,
                account.notes,
                to_iso(account.updated_at),
                account.id,
                expected_version,
            ),
        )

        if cursor.rowcount == 0:
            current = await self.get_account(account.id)
            if current is None:
                raise NotFoundError(f"Enrollment fee with ID {account.id} not found")
            logger.warning(
                "Enrollment fee version conflict",
                extra={
                    "account_id": account.id,
                    "expected_version": expected_version,
                    "actual_version": current.version,
                },
            )
            raise PersistenceConflictError(
                f"Enrollment fee {account.id} was modified concurrently "
                f"(expected version {expected_version}, found {current.version})"
            )

        return replace(account, version=expected_version + 1)

    # =========================================================================
    # 원장 항목
    # =========================================================================

    async def list_active_line_items(self, account_id: str, kind: LineItemKind) -> list[LineItem]:
        """활성 항목 (생성순)"""
        table = _LINE_ITEM_TABLES[kind]
        active_clause = "" if kind == LineItemKind.TRANSACTION else "AND removed_at IS NULL"
        rows = await self.db.fetchall(
            f"""
            SELECT {_LINE_ITEM_COLUMNS[kind]} FROM {table}
            WHERE account_id = ? {active_clause}
            ORDER BY created_at, rowid
            """,
            (account_id,),
        )
        return [_row_to_line_item(kind, row) for row in rows]

    async def get_line_item(self, kind: LineItemKind, item_id: str) -> LineItem | None:
        row = await self.db.fetchone(
            f"SELECT {_LINE_ITEM_COLUMNS[kind]} FROM {_LINE_ITEM_TABLES[kind]} WHERE id = ?",
            (item_id,),
        )
        return _row_to_line_item(kind, row) if row else None

    async def create_line_item(self, item: LineItem) -> LineItem:
        params = _line_item_params(item)
        placeholders = ", ".join("?" for _ in params)
        await self.db.execute(
            f"""
            INSERT INTO {_LINE_ITEM_TABLES[item.kind]} ({_LINE_ITEM_COLUMNS[item.kind]})
            VALUES ({placeholders})
            """,
            params,
        )
        return item

    async def soft_delete_line_item(
        self,
        kind: LineItemKind,
        item_id: str,
        removed_by: str | None,
        removed_at: datetime,
    ) -> LineItem:
        """소프트 삭제

        Raises:
            ValueError: 납부 거래는 삭제 불가
            NotFoundError: 활성 항목 없음
        """
        if kind == LineItemKind.TRANSACTION:
            raise ValueError("Transactions cannot be removed")

        cursor = await self.db.execute(
            f"""
            UPDATE {_LINE_ITEM_TABLES[kind]}
            SET removed_at = ?, removed_by = ?
            WHERE id = ? AND removed_at IS NULL
            """,
            (to_iso(removed_at), removed_by, item_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"{kind.value.title()} with ID {item_id} not found or already removed")

        item = await self.get_line_item(kind, item_id)
        if item is None:
            raise NotFoundError(f"{kind.value.title()} with ID {item_id} not found")
        return item

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        item = await self.get_line_item(LineItemKind.TRANSACTION, transaction_id)
        return item  # type: ignore[return-value]

    async def list_transactions(self, account_id: str) -> list[Transaction]:
        """납부 거래 (납부일 내림차순)"""
        kind = LineItemKind.TRANSACTION
        rows = await self.db.fetchall(
            f"""
            SELECT {_LINE_ITEM_COLUMNS[kind]} FROM fee_transaction
            WHERE account_id = ?
            ORDER BY txn_date DESC, rowid DESC
            """,
            (account_id,),
        )
        return [_row_to_line_item(kind, row) for row in rows]  # type: ignore[misc]

    # =========================================================================
    # 이력
    # =========================================================================

    async def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        await self.db.execute(
            """
            INSERT INTO enrollment_history (
                entry_id, account_id, enrollment_id, action,
                details_json, actor_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.account_id,
                entry.enrollment_id,
                entry.action.value,
                json.dumps(entry.details, ensure_ascii=False, default=str),
                entry.actor_id,
                to_iso(entry.created_at),
            ),
        )
        return entry

    async def list_history(
        self,
        account_id: str,
        limit: int = Defaults.HISTORY_PAGE_SIZE,
        offset: int = 0,
    ) -> list[HistoryEntry]:
        """이력 (최신순, 같은 시각이면 seq 역순)"""
        rows = await self.db.fetchall(
            """
            SELECT entry_id, account_id, enrollment_id, action,
                   details_json, actor_id, created_at
            FROM enrollment_history
            WHERE account_id = ?
            ORDER BY created_at DESC, seq DESC
            LIMIT ? OFFSET ?
            """,
            (account_id, limit, offset),
        )
        return [
            HistoryEntry(
                id=row[0],
                account_id=row[1],
                enrollment_id=row[2],
                action=HistoryAction(row[3]),
                details=json.loads(row[4]),
                actor_id=row[5],
                created_at=parse_datetime(row[6]),
            )
            for row in rows
        ]

    # =========================================================================
    # 수수료 체계
    # =========================================================================

    async def get_fee_structure(self, structure_id: str) -> FeeStructure | None:
        row = await self.db.fetchone(
            f"SELECT {_STRUCTURE_COLUMNS} FROM fee_structure WHERE id = ?",
            (structure_id,),
        )
        return _row_to_structure(row) if row else None

    async def list_fee_structures(self, program_campus_id: str | None = None) -> list[FeeStructure]:
        """활성 수수료 체계 (최신순)"""
        if program_campus_id is None:
            rows = await self.db.fetchall(
                f"""
                SELECT {_STRUCTURE_COLUMNS} FROM fee_structure
                WHERE status = 'ACTIVE'
                ORDER BY created_at DESC
                """
            )
        else:
            rows = await self.db.fetchall(
                f"""
                SELECT {_STRUCTURE_COLUMNS} FROM fee_structure
                WHERE status = 'ACTIVE' AND program_campus_id = ?
                ORDER BY created_at DESC
                """,
                (program_campus_id,),
            )
        return [_row_to_structure(row) for row in rows]

    async def save_fee_structure(self, structure: FeeStructure) -> FeeStructure:
        """UPSERT"""
        await self.db.execute(
            f"""
            INSERT INTO fee_structure ({_STRUCTURE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                program_campus_id = excluded.program_campus_id,
                academic_cycle_id = excluded.academic_cycle_id,
                term_id = excluded.term_id,
                components_json = excluded.components_json,
                is_recurring = excluded.is_recurring,
                recurring_interval = excluded.recurring_interval,
                status = excluded.status,
                updated_at = excluded.updated_at
            """,
            (
                structure.id,
                structure.name,
                structure.description,
                structure.program_campus_id,
                structure.academic_cycle_id,
                structure.term_id,
                json.dumps([c.to_dict() for c in structure.components], ensure_ascii=False),
                1 if structure.is_recurring else 0,
                structure.recurring_interval,
                structure.status.value,
                structure.created_by,
                to_iso(structure.created_at),
                to_iso(structure.updated_at),
            ),
        )
        return structure

    # =========================================================================
    # 할인 유형
    # =========================================================================

    async def get_discount_type(self, discount_type_id: str) -> DiscountType | None:
        row = await self.db.fetchone(
            """
            SELECT id, name, description, is_active, created_at
            FROM discount_type WHERE id = ?
            """,
            (discount_type_id,),
        )
        if row is None:
            return None
        return DiscountType(
            id=row[0],
            name=row[1],
            description=row[2],
            is_active=bool(row[3]),
            created_at=parse_datetime(row[4]),
        )

    async def list_discount_types(self) -> list[DiscountType]:
        rows = await self.db.fetchall(
            """
            SELECT id, name, description, is_active, created_at
            FROM discount_type ORDER BY name
            """
        )
        return [
            DiscountType(
                id=row[0],
                name=row[1],
                description=row[2],
                is_active=bool(row[3]),
                created_at=parse_datetime(row[4]),
            )
            for row in rows
        ]

    async def save_discount_type(self, discount_type: DiscountType) -> DiscountType:
        await self.db.execute(
            """
            INSERT INTO discount_type (id, name, description, is_active, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                is_active = excluded.is_active
            """,
            (
                discount_type.id,
                discount_type.name,
                discount_type.description,
                1 if discount_type.is_active else 0,
                to_iso(discount_type.created_at),
            ),
        )
        return discount_type

    # =========================================================================
    # 고지서
    # =========================================================================

    async def get_challan(self, challan_id: str) -> Challan | None:
        row = await self.db.fetchone(
            f"SELECT {_CHALLAN_COLUMNS} FROM fee_challan WHERE id = ?",
            (challan_id,),
        )
        return _row_to_challan(row) if row else None

    async def save_challan(self, challan: Challan) -> Challan:
        """UPSERT"""
        await self.db.execute(
            f"""
            INSERT INTO fee_challan ({_CHALLAN_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                paid_amount = excluded.paid_amount,
                payment_status = excluded.payment_status,
                due_date = excluded.due_date,
                updated_at = excluded.updated_at
            """,
            (
                challan.id,
                challan.account_id,
                str(challan.total_amount),
                str(challan.paid_amount),
                challan.payment_status.value,
                to_iso(challan.due_date),
                challan.created_by,
                to_iso(challan.created_at),
                to_iso(challan.updated_at),
            ),
        )
        return challan
