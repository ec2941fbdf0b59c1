"""
수수료 원장 도메인 모델

계정(EnrollmentFee), 원장 항목(Discount/Charge/Arrear/Transaction),
이력(HistoryEntry) 및 수수료 체계 카탈로그 정의.

원장 항목은 닫힌 합 타입(LineItem)으로 표현하며
모든 금액은 Decimal 사용.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Union
from uuid import uuid4

from core.domain.errors import ValidationError
from core.types import (
    FeeComponentType,
    FeeStructureStatus,
    HistoryAction,
    LineItemKind,
    PaymentStatus,
)
from core.utils.money import sum_amounts
from core.utils.timezone import now_utc, to_iso


def new_id() -> str:
    """엔티티 ID 생성 (UUID4 문자열)"""
    return str(uuid4())


# =========================================================================
# 수수료 체계 카탈로그
# =========================================================================

@dataclass(frozen=True)
class FeeComponent:
    """수수료 구성 항목 (검증된 구조체)

    생성 시점에 이름/금액을 검증하므로 원장 코어에는
    유효한 구성 항목만 들어옴.
    """

    name: str
    type: FeeComponentType
    amount: Decimal
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Fee component name is required")
        if self.amount <= 0:
            raise ValidationError(
                f"Fee component '{self.name}' amount must be greater than zero: {self.amount}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "amount": str(self.amount),
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "FeeComponent":
        return FeeComponent(
            name=data["name"],
            type=FeeComponentType(data["type"]),
            amount=Decimal(str(data["amount"])),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class FeeStructure:
    """수수료 체계

    base_amount는 구성 항목 금액의 합.
    """

    id: str
    name: str
    program_campus_id: str
    components: tuple[FeeComponent, ...]
    created_by: str
    description: str | None = None
    academic_cycle_id: str | None = None
    term_id: str | None = None
    is_recurring: bool = False
    recurring_interval: str | None = None
    status: FeeStructureStatus = FeeStructureStatus.ACTIVE
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @property
    def base_amount(self) -> Decimal:
        """구성 항목 합계"""
        return sum_amounts(c.amount for c in self.components)

    @property
    def is_active(self) -> bool:
        return self.status == FeeStructureStatus.ACTIVE


@dataclass(frozen=True)
class DiscountType:
    """할인 유형 (장학금, 형제 할인 등)"""

    id: str
    name: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=now_utc)


# =========================================================================
# 계정 (EnrollmentFee)
# =========================================================================

@dataclass(frozen=True)
class EnrollmentFee:
    """학생 1명의 수수료 계정

    base_amount는 수수료 체계 변경(rebase) 외에는 불변.
    discounted_amount, final_amount, payment_status는 원장 항목에서 파생.
    version은 저장할 때마다 1씩 증가 (낙관적 락).
    """

    id: str
    enrollment_id: str
    fee_structure_id: str
    base_amount: Decimal
    discounted_amount: Decimal
    final_amount: Decimal
    payment_status: PaymentStatus
    created_by: str
    due_date: date | None = None
    payment_method: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    version: int = 1

    def balance_fields(self) -> dict[str, str]:
        """이력 before/after 스냅샷용 파생 필드"""
        return {
            "base_amount": str(self.base_amount),
            "discounted_amount": str(self.discounted_amount),
            "final_amount": str(self.final_amount),
            "payment_status": self.payment_status.value,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "fee_structure_id": self.fee_structure_id,
            "base_amount": str(self.base_amount),
            "discounted_amount": str(self.discounted_amount),
            "final_amount": str(self.final_amount),
            "payment_status": self.payment_status.value,
            "due_date": to_iso(self.due_date),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "version": self.version,
        }


# =========================================================================
# 원장 항목 (닫힌 합 타입)
# =========================================================================

@dataclass(frozen=True)
class Discount:
    """할인 항목"""

    kind: ClassVar[LineItemKind] = LineItemKind.DISCOUNT

    id: str
    account_id: str
    discount_type_id: str
    amount: Decimal
    created_by: str
    reason: str | None = None
    approved_by: str | None = None
    created_at: datetime = field(default_factory=now_utc)
    removed_at: datetime | None = None
    removed_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.removed_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "account_id": self.account_id,
            "discount_type_id": self.discount_type_id,
            "amount": str(self.amount),
            "reason": self.reason,
            "approved_by": self.approved_by,
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "removed_at": to_iso(self.removed_at),
            "removed_by": self.removed_by,
        }


@dataclass(frozen=True)
class Charge:
    """추가 부과금 항목"""

    kind: ClassVar[LineItemKind] = LineItemKind.CHARGE

    id: str
    account_id: str
    name: str
    amount: Decimal
    created_by: str
    reason: str | None = None
    due_date: date | None = None
    created_at: datetime = field(default_factory=now_utc)
    removed_at: datetime | None = None
    removed_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.removed_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "account_id": self.account_id,
            "name": self.name,
            "amount": str(self.amount),
            "reason": self.reason,
            "due_date": to_iso(self.due_date),
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "removed_at": to_iso(self.removed_at),
            "removed_by": self.removed_by,
        }


@dataclass(frozen=True)
class Arrear:
    """이월 미납금 항목"""

    kind: ClassVar[LineItemKind] = LineItemKind.ARREAR

    id: str
    account_id: str
    amount: Decimal
    reason: str
    created_by: str
    previous_fee_id: str | None = None
    due_date: date | None = None
    created_at: datetime = field(default_factory=now_utc)
    removed_at: datetime | None = None
    removed_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.removed_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "account_id": self.account_id,
            "amount": str(self.amount),
            "reason": self.reason,
            "previous_fee_id": self.previous_fee_id,
            "due_date": to_iso(self.due_date),
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "removed_at": to_iso(self.removed_at),
            "removed_by": self.removed_by,
        }


@dataclass(frozen=True)
class Transaction:
    """납부 거래 (삭제 불가)"""

    kind: ClassVar[LineItemKind] = LineItemKind.TRANSACTION

    id: str
    account_id: str
    amount: Decimal
    method: str
    created_by: str
    date: datetime = field(default_factory=now_utc)
    reference: str | None = None
    notes: str | None = None
    challan_id: str | None = None
    created_at: datetime = field(default_factory=now_utc)

    @property
    def is_active(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "account_id": self.account_id,
            "amount": str(self.amount),
            "method": self.method,
            "date": to_iso(self.date),
            "reference": self.reference,
            "notes": self.notes,
            "challan_id": self.challan_id,
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
        }


LineItem = Union[Discount, Charge, Arrear, Transaction]

# 소프트 삭제 가능한 항목
RemovableLineItem = Union[Discount, Charge, Arrear]

LINE_ITEM_TYPES: dict[LineItemKind, type] = {
    LineItemKind.DISCOUNT: Discount,
    LineItemKind.CHARGE: Charge,
    LineItemKind.ARREAR: Arrear,
    LineItemKind.TRANSACTION: Transaction,
}


def mark_removed(item: RemovableLineItem, removed_by: str | None, removed_at: datetime) -> RemovableLineItem:
    """소프트 삭제된 사본 반환"""
    return replace(item, removed_at=removed_at, removed_by=removed_by)


# =========================================================================
# 납부 고지서 (Challan)
# =========================================================================

@dataclass(frozen=True)
class Challan:
    """납부 고지서

    거래가 고지서에 연결되면 paid_amount/payment_status 갱신.
    """

    id: str
    account_id: str
    total_amount: Decimal
    created_by: str
    paid_amount: Decimal = Decimal("0")
    payment_status: PaymentStatus = PaymentStatus.PENDING
    due_date: date | None = None
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "total_amount": str(self.total_amount),
            "paid_amount": str(self.paid_amount),
            "payment_status": self.payment_status.value,
            "due_date": to_iso(self.due_date),
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


# =========================================================================
# 이력
# =========================================================================

@dataclass(frozen=True)
class HistoryEntry:
    """계정 변경 이력 (불변)

    계정을 ID로만 참조 (약한 참조).
    """

    id: str
    account_id: str
    enrollment_id: str
    action: HistoryAction
    details: dict[str, Any]
    actor_id: str
    created_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "enrollment_id": self.enrollment_id,
            "action": self.action.value,
            "details": self.details,
            "actor_id": self.actor_id,
            "created_at": to_iso(self.created_at),
        }


# =========================================================================
# 서비스 결과 페이로드
# =========================================================================

@dataclass(frozen=True)
class MutationOutcome:
    """변경 연산 결과: 생성/삭제된 항목 + 갱신된 계정"""

    item: LineItem | EnrollmentFee
    account: EnrollmentFee


@dataclass(frozen=True)
class AccountDetail:
    """계정 상세 (활성 항목 포함)"""

    account: EnrollmentFee
    discounts: list[Discount]
    charges: list[Charge]
    arrears: list[Arrear]
    transactions: list[Transaction]

    @property
    def total_paid(self) -> Decimal:
        return sum_amounts(t.amount for t in self.transactions)

    @property
    def balance_due(self) -> Decimal:
        return max(self.account.final_amount - self.total_paid, Decimal("0"))


@dataclass(frozen=True)
class Receipt:
    """납부 영수증"""

    transaction: Transaction
    account: EnrollmentFee
    fee_structure_name: str
    total_paid: Decimal
    balance_due: Decimal
