"""
Drift Detector

저장된 계정 스냅샷과 활성 원장 항목 재계산 결과를 비교하여 불일치 감지.
정상 운영에서는 항상 일치해야 하며, 불일치는 외부 수정이나 버그의 흔적.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from core.domain.models import EnrollmentFee
from core.ledger.calculator import recalculate
from core.types import LineItemKind

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerRepository

logger = logging.getLogger(__name__)


@dataclass
class DriftInfo:
    """Drift 정보"""
    account_id: str
    enrollment_id: str
    expected: dict[str, Any]  # 재계산 값
    actual: dict[str, Any]    # 저장된 값
    description: str


def compare_snapshot(account: EnrollmentFee, expected: dict[str, str]) -> DriftInfo | None:
    """계정의 저장 값과 재계산 값 비교

    Args:
        account: 저장된 계정
        expected: 재계산된 discounted_amount/final_amount/payment_status

    Returns:
        DriftInfo 또는 None (일치 시)
    """
    actual = {key: value for key, value in account.balance_fields().items() if key in expected}
    mismatched = sorted(
        key for key in expected
        # 금액은 "100"과 "100.00"을 같은 값으로 취급
        if _normalize(actual[key]) != _normalize(expected[key])
    )
    if not mismatched:
        return None

    return DriftInfo(
        account_id=account.id,
        enrollment_id=account.enrollment_id,
        expected=expected,
        actual=actual,
        description=f"Stored snapshot differs in {', '.join(mismatched)}",
    )


def _normalize(value: str) -> str:
    try:
        return str(Decimal(value).normalize())
    except InvalidOperation:
        return value


async def scan_ledger(repository: ILedgerRepository) -> list[DriftInfo]:
    """전체 계정 재계산 후 불일치 목록 반환

    Args:
        repository: 원장 저장소

    Returns:
        DriftInfo 목록 (빈 목록이면 정합)
    """
    drifts: list[DriftInfo] = []

    for account in await repository.list_accounts():
        items = {
            kind: await repository.list_active_line_items(account.id, kind)
            for kind in LineItemKind
        }
        snapshot = recalculate(
            account.base_amount,
            items[LineItemKind.DISCOUNT],  # type: ignore[arg-type]
            items[LineItemKind.CHARGE],  # type: ignore[arg-type]
            items[LineItemKind.ARREAR],  # type: ignore[arg-type]
            items[LineItemKind.TRANSACTION],  # type: ignore[arg-type]
            current_status=account.payment_status,
        )
        drift = compare_snapshot(
            account,
            {
                "discounted_amount": str(snapshot.discounted_amount),
                "final_amount": str(snapshot.final_amount),
                "payment_status": snapshot.payment_status.value,
            },
        )
        if drift is not None:
            logger.warning(
                f"Drift detected: {drift.description}",
                extra={"account_id": account.id},
            )
            drifts.append(drift)

    return drifts
