"""
잔액 재계산기

계정의 활성 원장 항목으로부터 파생 금액과 납부 상태를 계산하는 순수 함수.
DB 접근이나 부수효과 없음: 같은 입력이면 항상 같은 출력.

계산 규칙:
    discounted_amount = max(base_amount - Σ할인, 0)
    final_amount      = discounted_amount + Σ부과금 + Σ이월미납
    total_paid        = Σ납부
    payment_status    = PAID (total_paid >= final_amount)
                      | PARTIAL (total_paid > 0)
                      | PENDING
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from core.constants import Money
from core.domain.errors import ValidationError
from core.domain.models import Arrear, Charge, Discount, Transaction
from core.types import PaymentStatus
from core.utils.money import sum_amounts


@dataclass(frozen=True)
class BalanceSnapshot:
    """재계산 결과"""

    discounted_amount: Decimal
    final_amount: Decimal
    total_paid: Decimal
    payment_status: PaymentStatus


def derive_payment_status(total_paid: Decimal, final_amount: Decimal) -> PaymentStatus:
    """납부 합계와 최종 금액으로 납부 상태 결정

    Args:
        total_paid: 납부 합계
        final_amount: 최종 청구 금액

    Returns:
        PAID, PARTIAL 또는 PENDING (WAIVED는 파생되지 않음)
    """
    if total_paid >= final_amount:
        return PaymentStatus.PAID
    if total_paid > Money.ZERO:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def validate_discount_total(base_amount: Decimal, discounts: Iterable[Discount]) -> Decimal:
    """할인 합계가 기본 금액을 넘지 않는지 검증

    Args:
        base_amount: 기본 금액
        discounts: 활성 할인 목록

    Returns:
        할인 합계

    Raises:
        ValidationError: 할인 합계 > 기본 금액
    """
    total_discounts = sum_amounts(d.amount for d in discounts)
    if total_discounts > base_amount:
        raise ValidationError(
            f"Total discounts ({total_discounts}) exceed the base amount ({base_amount})"
        )
    return total_discounts


def recalculate(
    base_amount: Decimal,
    discounts: Iterable[Discount],
    charges: Iterable[Charge],
    arrears: Iterable[Arrear],
    transactions: Iterable[Transaction],
    current_status: PaymentStatus | None = None,
) -> BalanceSnapshot:
    """파생 금액 및 납부 상태 재계산

    할인 초과는 여기서 0으로 잘라내기만 함.
    추가 경로에서는 호출 전에 validate_discount_total()로 거부해야 함.

    Args:
        base_amount: 기본 금액
        discounts: 활성 할인
        charges: 활성 부과금
        arrears: 활성 이월 미납금
        transactions: 납부 거래
        current_status: 현재 상태 (WAIVED면 유지)

    Returns:
        BalanceSnapshot
    """
    total_discounts = sum_amounts(d.amount for d in discounts)
    discounted_amount = max(base_amount - total_discounts, Money.ZERO)

    total_charges = sum_amounts(c.amount for c in charges)
    total_arrears = sum_amounts(a.amount for a in arrears)
    final_amount = discounted_amount + total_charges + total_arrears

    total_paid = sum_amounts(t.amount for t in transactions)

    if current_status == PaymentStatus.WAIVED:
        payment_status = PaymentStatus.WAIVED
    else:
        payment_status = derive_payment_status(total_paid, final_amount)

    return BalanceSnapshot(
        discounted_amount=discounted_amount,
        final_amount=final_amount,
        total_paid=total_paid,
        payment_status=payment_status,
    )
