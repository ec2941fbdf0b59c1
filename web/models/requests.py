"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증

금액의 양수/상한 검증은 원장 서비스가 수행 (오류 메시지 일관성 유지).
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from core.types import FeeComponentType, PaymentStatus


class FeeComponentRequest(BaseModel):
    """수수료 구성 항목"""

    name: str = Field(..., description="항목 이름")
    type: FeeComponentType = Field(default=FeeComponentType.MISCELLANEOUS, description="항목 유형")
    amount: Decimal = Field(..., description="금액")
    description: str | None = Field(default=None, description="설명")


class FeeStructureCreateRequest(BaseModel):
    """수수료 체계 생성 요청"""

    name: str = Field(..., description="체계 이름")
    program_campus_id: str = Field(..., description="프로그램-캠퍼스 ID")
    components: list[FeeComponentRequest] = Field(..., description="구성 항목 (1개 이상)")
    created_by: str = Field(..., description="생성자 ID")
    description: str | None = Field(default=None)
    academic_cycle_id: str | None = Field(default=None)
    term_id: str | None = Field(default=None)
    is_recurring: bool = Field(default=False, description="반복 청구 여부")
    recurring_interval: str | None = Field(default=None, description="반복 주기 (MONTHLY 등)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "2026 Spring - Grade 5",
                    "program_campus_id": "pc-001",
                    "components": [
                        {"name": "Tuition", "type": "TUITION", "amount": "800"},
                        {"name": "Library", "type": "LIBRARY", "amount": "200"},
                    ],
                    "created_by": "admin-1",
                }
            ]
        }
    }


class FeeStructureUpdateRequest(BaseModel):
    """수수료 체계 수정 요청 (지정한 필드만 변경)"""

    name: str | None = Field(default=None)
    description: str | None = Field(default=None)
    academic_cycle_id: str | None = Field(default=None)
    term_id: str | None = Field(default=None)
    is_recurring: bool | None = Field(default=None)
    recurring_interval: str | None = Field(default=None)
    components: list[FeeComponentRequest] | None = Field(default=None)


class DiscountTypeCreateRequest(BaseModel):
    """할인 유형 생성 요청"""

    name: str = Field(..., description="할인 유형 이름")
    description: str | None = Field(default=None)


class EnrollmentFeeCreateRequest(BaseModel):
    """수강 등록에 수수료 할당 요청"""

    enrollment_id: str = Field(..., description="수강 등록 ID")
    fee_structure_id: str = Field(..., description="수수료 체계 ID")
    created_by: str = Field(..., description="생성자 ID")
    due_date: date | None = Field(default=None, description="납부 기한")
    payment_method: str | None = Field(default=None, description="기본 납부 수단")
    notes: str | None = Field(default=None)
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING, description="초기 상태 (PENDING 또는 WAIVED)"
    )


class EnrollmentFeeUpdateRequest(BaseModel):
    """계정 수정 요청

    fee_structure_id 변경 시 base_amount 재계산 (rebase).
    payment_status는 WAIVED만 허용.
    """

    updated_by: str = Field(..., description="수정자 ID")
    fee_structure_id: str | None = Field(default=None)
    due_date: date | None = Field(default=None)
    payment_method: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    payment_status: PaymentStatus | None = Field(default=None)


class DiscountCreateRequest(BaseModel):
    """할인 추가 요청"""

    discount_type_id: str = Field(..., description="할인 유형 ID")
    amount: Decimal = Field(..., description="할인 금액")
    created_by: str = Field(..., description="생성자 ID")
    reason: str | None = Field(default=None)
    approved_by: str | None = Field(default=None, description="승인자 ID")


class ChargeCreateRequest(BaseModel):
    """추가 부과금 요청"""

    name: str = Field(..., description="부과금 이름")
    amount: Decimal = Field(..., description="금액")
    created_by: str = Field(..., description="생성자 ID")
    reason: str | None = Field(default=None)
    due_date: date | None = Field(default=None)


class ArrearCreateRequest(BaseModel):
    """이월 미납금 요청"""

    amount: Decimal = Field(..., description="금액")
    reason: str = Field(..., description="사유")
    created_by: str = Field(..., description="생성자 ID")
    previous_fee_id: str | None = Field(default=None, description="이전 계정 ID")
    due_date: date | None = Field(default=None)


class TransactionCreateRequest(BaseModel):
    """납부 기록 요청"""

    amount: Decimal = Field(..., description="납부 금액")
    method: str = Field(..., description="납부 수단 (CASH, BANK_TRANSFER 등)")
    created_by: str = Field(..., description="기록자 ID")
    date: datetime | None = Field(default=None, description="납부 일시 (기본: 현재)")
    reference: str | None = Field(default=None, description="참조 번호")
    notes: str | None = Field(default=None)
    challan_id: str | None = Field(default=None, description="고지서 ID")


class ChallanCreateRequest(BaseModel):
    """납부 고지서 발행 요청"""

    total_amount: Decimal = Field(..., description="고지 금액")
    created_by: str = Field(..., description="발행자 ID")
    due_date: date | None = Field(default=None)
