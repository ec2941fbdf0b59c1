"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화

금액은 정밀도 보존을 위해 문자열로 반환.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from core.domain.models import (
    AccountDetail,
    Challan,
    DiscountType,
    EnrollmentFee,
    FeeStructure,
    HistoryEntry,
    Receipt,
)
from core.utils.money import format_amount
from core.utils.timezone import to_iso


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    version: str = Field(..., description="API 버전")
    timestamp: datetime = Field(..., description="응답 시간 (UTC)")


class FeeComponentResponse(BaseModel):
    name: str
    type: str
    amount: str
    description: str | None = None


class FeeStructureResponse(BaseModel):
    """수수료 체계 응답"""

    id: str
    name: str
    description: str | None = None
    program_campus_id: str
    academic_cycle_id: str | None = None
    term_id: str | None = None
    components: list[FeeComponentResponse]
    base_amount: str = Field(..., description="구성 항목 합계")
    is_recurring: bool
    recurring_interval: str | None = None
    status: str
    created_by: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, structure: FeeStructure) -> "FeeStructureResponse":
        return cls(
            id=structure.id,
            name=structure.name,
            description=structure.description,
            program_campus_id=structure.program_campus_id,
            academic_cycle_id=structure.academic_cycle_id,
            term_id=structure.term_id,
            components=[FeeComponentResponse(**c.to_dict()) for c in structure.components],
            base_amount=str(structure.base_amount),
            is_recurring=structure.is_recurring,
            recurring_interval=structure.recurring_interval,
            status=structure.status.value,
            created_by=structure.created_by,
            created_at=to_iso(structure.created_at) or "",
            updated_at=to_iso(structure.updated_at) or "",
        )


class DiscountTypeResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    is_active: bool

    @classmethod
    def from_domain(cls, discount_type: DiscountType) -> "DiscountTypeResponse":
        return cls(
            id=discount_type.id,
            name=discount_type.name,
            description=discount_type.description,
            is_active=discount_type.is_active,
        )


class EnrollmentFeeResponse(BaseModel):
    """계정(수강 수수료) 응답"""

    id: str
    enrollment_id: str
    fee_structure_id: str
    base_amount: str
    discounted_amount: str
    final_amount: str
    payment_status: str = Field(..., description="PENDING/PARTIAL/PAID/WAIVED")
    due_date: str | None = None
    payment_method: str | None = None
    notes: str | None = None
    created_by: str
    created_at: str
    updated_at: str
    version: int

    @classmethod
    def from_domain(cls, account: EnrollmentFee) -> "EnrollmentFeeResponse":
        return cls(**account.to_dict())


class MutationResponse(BaseModel):
    """원장 변경 응답: 생성/삭제된 항목 + 갱신된 계정"""

    item: dict[str, Any] = Field(..., description="생성 또는 삭제된 원장 항목")
    account: EnrollmentFeeResponse


class EnrollmentFeeDetailResponse(BaseModel):
    """계정 상세 (활성 항목 포함)"""

    account: EnrollmentFeeResponse
    discounts: list[dict[str, Any]]
    charges: list[dict[str, Any]]
    arrears: list[dict[str, Any]]
    transactions: list[dict[str, Any]]
    total_paid: str
    balance_due: str

    @classmethod
    def from_domain(cls, detail: AccountDetail) -> "EnrollmentFeeDetailResponse":
        return cls(
            account=EnrollmentFeeResponse.from_domain(detail.account),
            discounts=[d.to_dict() for d in detail.discounts],
            charges=[c.to_dict() for c in detail.charges],
            arrears=[a.to_dict() for a in detail.arrears],
            transactions=[t.to_dict() for t in detail.transactions],
            total_paid=str(detail.total_paid),
            balance_due=str(detail.balance_due),
        )


class ChallanResponse(BaseModel):
    """납부 고지서 응답"""

    id: str
    account_id: str
    total_amount: str
    paid_amount: str
    payment_status: str
    due_date: str | None = None
    created_by: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, challan: Challan) -> "ChallanResponse":
        return cls(**challan.to_dict())


class ReceiptResponse(BaseModel):
    """납부 영수증 응답 (합계는 소수점 2자리 표시)"""

    receipt_number: str = Field(..., description="영수증 번호 (거래 ID)")
    transaction: dict[str, Any]
    account: EnrollmentFeeResponse
    fee_structure_name: str
    total_paid: str
    balance_due: str

    @classmethod
    def from_domain(cls, receipt: Receipt) -> "ReceiptResponse":
        return cls(
            receipt_number=receipt.transaction.id,
            transaction=receipt.transaction.to_dict(),
            account=EnrollmentFeeResponse.from_domain(receipt.account),
            fee_structure_name=receipt.fee_structure_name,
            total_paid=format_amount(receipt.total_paid),
            balance_due=format_amount(receipt.balance_due),
        )


class HistoryEntryResponse(BaseModel):
    """이력 응답"""

    id: str
    account_id: str
    enrollment_id: str
    action: str
    details: dict[str, Any]
    actor_id: str
    created_at: str

    @classmethod
    def from_domain(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        return cls(**entry.to_dict())


class HistoryListResponse(BaseModel):
    """이력 목록 응답 (최신순)"""

    items: list[HistoryEntryResponse]
    limit: int
    offset: int
