"""
수수료 원장 엔진

원장 항목(할인/부과금/이월미납/납부) 변경 시 계정 잔액을 재계산하고
변경 이력을 같은 트랜잭션에 기록.

사용 예시:
```python
from core.ledger import FeeLedgerService, HistoryJournal

journal = HistoryJournal(repository)
service = FeeLedgerService(repository, journal)

result = await service.add_transaction(account_id, Decimal("500"), "CASH", "cashier-1")
account = result.unwrap().account
```
"""

from core.ledger.calculator import (
    BalanceSnapshot,
    derive_payment_status,
    recalculate,
    validate_discount_total,
)
from core.ledger.catalog import FeeCatalogService, build_components
from core.ledger.journal import HistoryJournal
from core.ledger.service import FeeLedgerService

__all__ = [
    # 핵심 클래스
    "FeeLedgerService",
    "FeeCatalogService",
    "HistoryJournal",
    # 재계산
    "BalanceSnapshot",
    "recalculate",
    "derive_payment_status",
    "validate_discount_total",
    "build_components",
]
