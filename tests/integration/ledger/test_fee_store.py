"""FeeStore 통합 테스트"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
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
from core.storage.fee_store import FeeStore
from core.types import FeeComponentType, FeeStructureStatus, HistoryAction, LineItemKind, PaymentStatus
from core.utils.timezone import now_utc


def _structure(structure_id: str = "fs-1", program_campus_id: str = "pc-1") -> FeeStructure:
    return FeeStructure(
        id=structure_id,
        name=f"Structure {structure_id}",
        program_campus_id=program_campus_id,
        components=(
            FeeComponent(name="Tuition", type=FeeComponentType.TUITION, amount=Decimal("800.50")),
            FeeComponent(name="Library", type=FeeComponentType.LIBRARY, amount=Decimal("199.50"), description="Books"),
        ),
        created_by="admin",
    )


def _account(account_id: str = "acc-1", enrollment_id: str = "enr-1") -> EnrollmentFee:
    return EnrollmentFee(
        id=account_id,
        enrollment_id=enrollment_id,
        fee_structure_id="fs-1",
        base_amount=Decimal("1000"),
        discounted_amount=Decimal("1000"),
        final_amount=Decimal("1000"),
        payment_status=PaymentStatus.PENDING,
        created_by="admin",
        due_date=datetime(2026, 6, 30).date(),
    )


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "fee_store.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def store(db: SQLiteAdapter) -> FeeStore:
    """기본 수수료 체계/할인 유형/계정이 있는 저장소"""
    fee_store = FeeStore(db)
    async with fee_store.transaction():
        await fee_store.save_fee_structure(_structure())
        await fee_store.save_discount_type(DiscountType(id="dt-1", name="Scholarship"))
        await fee_store.create_account(_account())
    return fee_store


class TestAccounts:
    """계정 저장 테스트"""

    @pytest.mark.asyncio
    async def test_round_trip(self, store: FeeStore) -> None:
        account = await store.get_account("acc-1")

        assert account is not None
        assert account.base_amount == Decimal("1000")
        assert account.payment_status == PaymentStatus.PENDING
        assert account.due_date == datetime(2026, 6, 30).date()
        assert account.created_at.tzinfo == timezone.utc
        assert account.version == 1
        assert await store.get_account_by_enrollment("enr-1") == account
        assert await store.get_account("missing") is None

    @pytest.mark.asyncio
    async def test_save_with_version(self, store: FeeStore) -> None:
        account = await store.get_account("acc-1")
        changed = replace(account, final_amount=Decimal("900.25"), payment_status=PaymentStatus.PARTIAL)

        async with store.transaction():
            saved = await store.save_account(changed, expected_version=1)

        assert saved.version == 2
        stored = await store.get_account("acc-1")
        assert stored.final_amount == Decimal("900.25")
        assert stored.payment_status == PaymentStatus.PARTIAL
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_stale_version(self, store: FeeStore) -> None:
        account = await store.get_account("acc-1")
        async with store.transaction():
            await store.save_account(account, expected_version=1)

        with pytest.raises(PersistenceConflictError, match="expected version 1, found 2"):
            async with store.transaction():
                await store.save_account(account, expected_version=1)

    @pytest.mark.asyncio
    async def test_save_missing(self, store: FeeStore) -> None:
        with pytest.raises(NotFoundError):
            async with store.transaction():
                await store.save_account(_account("ghost", "enr-ghost"), expected_version=1)

    @pytest.mark.asyncio
    async def test_list_accounts(self, store: FeeStore) -> None:
        async with store.transaction():
            await store.create_account(_account("acc-2", "enr-2"))

        accounts = await store.list_accounts()

        assert [a.id for a in accounts] == ["acc-1", "acc-2"]


class TestLineItems:
    """원장 항목 테스트"""

    @pytest.mark.asyncio
    async def test_each_kind_round_trip(self, store: FeeStore) -> None:
        items = [
            Discount(id="d1", account_id="acc-1", discount_type_id="dt-1", amount=Decimal("100"),
                     created_by="admin", reason="Merit", approved_by="principal"),
            Charge(id="c1", account_id="acc-1", name="Lab", amount=Decimal("25.75"), created_by="clerk",
                   due_date=datetime(2026, 7, 1).date()),
            Arrear(id="a1", account_id="acc-1", amount=Decimal("40"), reason="Carry", created_by="clerk",
                   previous_fee_id="old"),
            Transaction(id="t1", account_id="acc-1", amount=Decimal("300"), method="CASH", created_by="clerk",
                        reference="R-1"),
        ]
        async with store.transaction():
            for item in items:
                await store.create_line_item(item)

        for item in items:
            assert await store.get_line_item(item.kind, item.id) == item

    @pytest.mark.asyncio
    async def test_active_items_in_creation_order(self, store: FeeStore) -> None:
        async with store.transaction():
            for index in range(3):
                await store.create_line_item(
                    Charge(id=f"c{index}", account_id="acc-1", name=f"Charge {index}",
                           amount=Decimal("10"), created_by="clerk")
                )

        charges = await store.list_active_line_items("acc-1", LineItemKind.CHARGE)

        assert [c.id for c in charges] == ["c0", "c1", "c2"]

    @pytest.mark.asyncio
    async def test_soft_delete(self, store: FeeStore) -> None:
        async with store.transaction():
            await store.create_line_item(
                Discount(id="d1", account_id="acc-1", discount_type_id="dt-1", amount=Decimal("100"), created_by="admin")
            )
            removed = await store.soft_delete_line_item(LineItemKind.DISCOUNT, "d1", "admin", now_utc())

        assert removed.removed_by == "admin"
        assert await store.list_active_line_items("acc-1", LineItemKind.DISCOUNT) == []
        # 삭제된 항목도 직접 조회 가능
        assert (await store.get_line_item(LineItemKind.DISCOUNT, "d1")).is_active is False

        with pytest.raises(NotFoundError, match="already removed"):
            async with store.transaction():
                await store.soft_delete_line_item(LineItemKind.DISCOUNT, "d1", "admin", now_utc())

    @pytest.mark.asyncio
    async def test_transactions_not_removable(self, store: FeeStore) -> None:
        with pytest.raises(ValueError):
            await store.soft_delete_line_item(LineItemKind.TRANSACTION, "t1", "admin", now_utc())

    @pytest.mark.asyncio
    async def test_transactions_date_desc(self, store: FeeStore) -> None:
        dates = {
            "t1": datetime(2026, 1, 5, tzinfo=timezone.utc),
            "t2": datetime(2026, 3, 5, tzinfo=timezone.utc),
            "t3": datetime(2026, 2, 5, tzinfo=timezone.utc),
        }
        async with store.transaction():
            for txn_id, day in dates.items():
                await store.create_line_item(
                    Transaction(id=txn_id, account_id="acc-1", amount=Decimal("1"), method="CASH",
                                created_by="clerk", date=day)
                )

        transactions = await store.list_transactions("acc-1")

        assert [t.id for t in transactions] == ["t2", "t3", "t1"]
        assert (await store.get_transaction("t3")).date == dates["t3"]


class TestHistory:
    """이력 저장 테스트"""

    @pytest.mark.asyncio
    async def test_round_trip_and_order(self, store: FeeStore) -> None:
        stamp = now_utc()
        async with store.transaction():
            for index, action in enumerate(
                [HistoryAction.FEE_ASSIGNED, HistoryAction.CHARGE_ADDED, HistoryAction.CHARGE_REMOVED]
            ):
                await store.append_history(
                    HistoryEntry(
                        id=f"h{index}",
                        account_id="acc-1",
                        enrollment_id="enr-1",
                        action=action,
                        details={"fee_id": "acc-1", "before": None, "after": {"final_amount": "1000"}},
                        actor_id="admin",
                        # 같은 시각이면 seq 역순
                        created_at=stamp,
                    )
                )

        history = await store.list_history("acc-1")
        page = await store.list_history("acc-1", limit=1, offset=2)

        assert [e.id for e in history] == ["h2", "h1", "h0"]
        assert history[0].details == {"fee_id": "acc-1", "before": None, "after": {"final_amount": "1000"}}
        assert history[0].action == HistoryAction.CHARGE_REMOVED
        assert [e.id for e in page] == ["h0"]


class TestCatalog:
    """수수료 체계 / 할인 유형 / 고지서 테스트"""

    @pytest.mark.asyncio
    async def test_structure_round_trip(self, store: FeeStore) -> None:
        structure = await store.get_fee_structure("fs-1")

        assert structure.base_amount == Decimal("1000.00")
        assert structure.components[1].description == "Books"
        assert structure.is_active is True

    @pytest.mark.asyncio
    async def test_structure_upsert_and_filter(self, store: FeeStore) -> None:
        async with store.transaction():
            await store.save_fee_structure(_structure("fs-2", "pc-2"))
            await store.save_fee_structure(
                replace(_structure(), status=FeeStructureStatus.DELETED, updated_at=now_utc())
            )

        assert [s.id for s in await store.list_fee_structures()] == ["fs-2"]
        assert await store.list_fee_structures("pc-1") == []
        assert (await store.get_fee_structure("fs-1")).status == FeeStructureStatus.DELETED

    @pytest.mark.asyncio
    async def test_discount_types(self, store: FeeStore) -> None:
        async with store.transaction():
            await store.save_discount_type(DiscountType(id="dt-0", name="Alumni", is_active=False))

        types = await store.list_discount_types()

        assert [t.name for t in types] == ["Alumni", "Scholarship"]
        assert (await store.get_discount_type("dt-0")).is_active is False

    @pytest.mark.asyncio
    async def test_challan_upsert(self, store: FeeStore) -> None:
        challan = Challan(id="ch-1", account_id="acc-1", total_amount=Decimal("500"), created_by="admin")
        async with store.transaction():
            await store.save_challan(challan)
            await store.save_challan(
                replace(challan, paid_amount=Decimal("200"), payment_status=PaymentStatus.PARTIAL)
            )

        stored = await store.get_challan("ch-1")
        assert stored.paid_amount == Decimal("200")
        assert stored.payment_status == PaymentStatus.PARTIAL
        assert await store.get_challan("nope") is None


class TestTransactions:
    """트랜잭션 경계 테스트"""

    @pytest.mark.asyncio
    async def test_rollback(self, store: FeeStore) -> None:
        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.create_line_item(
                    Charge(id="c1", account_id="acc-1", name="Lab", amount=Decimal("10"), created_by="clerk")
                )
                raise RuntimeError("boom")

        assert await store.get_line_item(LineItemKind.CHARGE, "c1") is None

    @pytest.mark.asyncio
    async def test_locked_database_is_conflict(self, store: FeeStore, db: SQLiteAdapter) -> None:
        """다른 연결이 쓰기 잠금을 잡고 있으면 PersistenceConflictError"""
        other = SQLiteAdapter(db.db_path, busy_timeout_ms=50)
        await other.connect()
        other_store = FeeStore(other)
        try:
            async with store.transaction():
                with pytest.raises(PersistenceConflictError, match="busy"):
                    async with other_store.transaction():
                        pass
        finally:
            await other.close()

    @pytest.mark.asyncio
    async def test_lock_released_after_commit(self, store: FeeStore, db: SQLiteAdapter) -> None:
        other = SQLiteAdapter(db.db_path)
        await other.connect()
        other_store = FeeStore(other)

        async def write_other() -> None:
            async with other_store.transaction():
                await other_store.save_discount_type(DiscountType(id="dt-9", name="Late"))

        try:
            async with store.transaction():
                waiting = asyncio.create_task(write_other())
                await asyncio.sleep(0.05)
                assert not waiting.done()
            await waiting
        finally:
            await other.close()

        assert await store.get_discount_type("dt-9") is not None


class TestSnapshot:
    """읽기 스냅샷 테스트"""

    @pytest.mark.asyncio
    async def test_waits_for_open_transaction(self, store: FeeStore) -> None:
        """같은 연결의 쓰기 트랜잭션이 끝난 뒤에 읽음"""
        release = asyncio.Event()

        async def write() -> None:
            async with store.transaction():
                await store.create_line_item(
                    Charge(id="c1", account_id="acc-1", name="Lab", amount=Decimal("10"), created_by="clerk")
                )
                await release.wait()
                raise RuntimeError("abort")

        async def read() -> LineItem | None:
            async with store.snapshot():
                return await store.get_line_item(LineItemKind.CHARGE, "c1")

        writer = asyncio.create_task(write())
        await asyncio.sleep(0.01)
        reader = asyncio.create_task(read())
        await asyncio.sleep(0.05)
        assert not reader.done()

        release.set()
        with pytest.raises(RuntimeError):
            await writer
        assert await reader is None

    @pytest.mark.asyncio
    async def test_transaction_usable_after_snapshot(self, store: FeeStore) -> None:
        async with store.snapshot():
            assert await store.get_account("acc-1") is not None

        async with store.transaction():
            await store.save_discount_type(DiscountType(id="dt-9", name="Late"))

        async with store.snapshot():
            assert await store.get_discount_type("dt-9") is not None
