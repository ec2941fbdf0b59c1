"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    ArrearCreateRequest,
    ChallanCreateRequest,
    ChargeCreateRequest,
    DiscountCreateRequest,
    DiscountTypeCreateRequest,
    EnrollmentFeeCreateRequest,
    EnrollmentFeeUpdateRequest,
    FeeComponentRequest,
    FeeStructureCreateRequest,
    FeeStructureUpdateRequest,
    TransactionCreateRequest,
)
from web.models.responses import (
    ChallanResponse,
    DiscountTypeResponse,
    EnrollmentFeeDetailResponse,
    EnrollmentFeeResponse,
    FeeStructureResponse,
    HealthResponse,
    HistoryEntryResponse,
    HistoryListResponse,
    MutationResponse,
    ReceiptResponse,
)

__all__ = [
    # Requests
    "ArrearCreateRequest",
    "ChallanCreateRequest",
    "ChargeCreateRequest",
    "DiscountCreateRequest",
    "DiscountTypeCreateRequest",
    "EnrollmentFeeCreateRequest",
    "EnrollmentFeeUpdateRequest",
    "FeeComponentRequest",
    "FeeStructureCreateRequest",
    "FeeStructureUpdateRequest",
    "TransactionCreateRequest",
    # Responses
    "ChallanResponse",
    "DiscountTypeResponse",
    "EnrollmentFeeDetailResponse",
    "EnrollmentFeeResponse",
    "FeeStructureResponse",
    "HealthResponse",
    "HistoryEntryResponse",
    "HistoryListResponse",
    "MutationResponse",
    "ReceiptResponse",
]
