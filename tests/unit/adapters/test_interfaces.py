"""
Protocol 인터페이스 테스트

Protocol 타입 검증 및 구현 확인.
"""

from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import ILedgerRepository
from adapters.mock.ledger_repository import InMemoryLedgerRepository
from core.storage.fee_store import FeeStore

REQUIRED_METHODS = [
    "transaction",
    "snapshot",
    "get_account",
    "get_account_by_enrollment",
    "list_accounts",
    "create_account",
    "save_account",
    "list_active_line_items",
    "get_line_item",
    "create_line_item",
    "soft_delete_line_item",
    "get_transaction",
    "list_transactions",
    "append_history",
    "list_history",
    "get_fee_structure",
    "list_fee_structures",
    "save_fee_structure",
    "get_discount_type",
    "list_discount_types",
    "save_discount_type",
    "get_challan",
    "save_challan",
]


class TestILedgerRepository:
    """ILedgerRepository Protocol 테스트"""

    def test_in_memory_implements_protocol(self) -> None:
        """인메모리 저장소가 Protocol을 구현하는지 확인"""
        assert isinstance(InMemoryLedgerRepository(), ILedgerRepository)

    def test_fee_store_implements_protocol(self, tmp_path: Path) -> None:
        """SQLite 저장소가 Protocol을 구현하는지 확인 (연결 불필요)"""
        store = FeeStore(SQLiteAdapter(tmp_path / "ledger.db"))

        assert isinstance(store, ILedgerRepository)

    def test_protocol_has_required_methods(self) -> None:
        """Protocol에 필수 메서드가 정의되어 있는지 확인"""
        for implementation in (InMemoryLedgerRepository, FeeStore):
            for method_name in REQUIRED_METHODS:
                assert hasattr(ILedgerRepository, method_name), f"Protocol missing: {method_name}"
                assert callable(getattr(implementation, method_name, None)), (
                    f"{implementation.__name__} missing method: {method_name}"
                )

    def test_unrelated_object_rejected(self) -> None:
        assert not isinstance(object(), ILedgerRepository)
