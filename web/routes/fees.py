"""
수강 수수료 라우트

계정 생성/조회/수정, 할인·부과금·이월미납·납부 추가,
항목 소프트 삭제, 고지서 발행, 영수증 조회 API
"""

from fastapi import APIRouter, Depends, Path, Query

from core.domain.errors import LedgerError, Result
from core.domain.models import MutationOutcome
from core.ledger.service import FeeLedgerService
from web.dependencies import get_ledger_service
from web.models.requests import (
    ArrearCreateRequest,
    ChallanCreateRequest,
    ChargeCreateRequest,
    DiscountCreateRequest,
    EnrollmentFeeCreateRequest,
    EnrollmentFeeUpdateRequest,
    TransactionCreateRequest,
)
from web.models.responses import (
    ChallanResponse,
    EnrollmentFeeDetailResponse,
    EnrollmentFeeResponse,
    MutationResponse,
    ReceiptResponse,
)
from web.routes._errors import to_http_exception, unwrap_or_raise

router = APIRouter(prefix="/api", tags=["Enrollment Fees"])


def _mutation_response(result: Result[MutationOutcome]) -> MutationResponse:
    outcome = unwrap_or_raise(result)
    return MutationResponse(
        item=outcome.item.to_dict(),
        account=EnrollmentFeeResponse.from_domain(outcome.account),
    )


# =========================================================================
# 계정
# =========================================================================

@router.post("/enrollment-fees", response_model=EnrollmentFeeResponse, status_code=201)
async def create_enrollment_fee(
    request: EnrollmentFeeCreateRequest,
    service: FeeLedgerService = Depends(get_ledger_service),
) -> EnrollmentFeeResponse:
    """수강 등록에 수수료 체계 할당"""
    result = await service.create_enrollment_fee(
        enrollment_id=request.enrollment_id,
        fee_structure_id=request.fee_structure_id,
        created_by=request.created_by,
        due_date=request.due_date,
        payment_method=request.payment_method,
        notes=request.notes,
        payment_status=request.payment_status,
    )
    return EnrollmentFeeResponse.from_domain(unwrap_or_raise(result).account)


@router.get("/enrollment-fees/{fee_id}", response_model=EnrollmentFeeDetailResponse)
async def get_enrollment_fee(
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> EnrollmentFeeDetailResponse:
    """계정 상세 조회 (활성 항목 포함)"""
    try:
        detail = await service.get_account_detail(fee_id)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return EnrollmentFeeDetailResponse.from_domain(detail)


@router.get("/enrollments/{enrollment_id}/fee", response_model=EnrollmentFeeDetailResponse)
async def get_enrollment_fee_by_enrollment(
    enrollment_id: str = Path(..., description="수강 등록 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> EnrollmentFeeDetailResponse:
    """수강 등록 ID로 계정 상세 조회"""
    try:
        account = await service.get_account_by_enrollment(enrollment_id)
        detail = await service.get_account_detail(account.id)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return EnrollmentFeeDetailResponse.from_domain(detail)


@router.patch("/enrollment-fees/{fee_id}", response_model=MutationResponse)
async def update_enrollment_fee(
    request: EnrollmentFeeUpdateRequest,
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """계정 수정

    fee_structure_id 변경 시 새 체계 기준으로 rebase.
    """
    result = await service.update_enrollment_fee(
        account_id=fee_id,
        updated_by=request.updated_by,
        fee_structure_id=request.fee_structure_id,
        due_date=request.due_date,
        payment_method=request.payment_method,
        notes=request.notes,
        payment_status=request.payment_status,
    )
    return _mutation_response(result)


# =========================================================================
# 원장 항목 추가
# =========================================================================

@router.post("/enrollment-fees/{fee_id}/discounts", response_model=MutationResponse, status_code=201)
async def add_discount(
    request: DiscountCreateRequest,
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """할인 추가"""
    result = await service.add_discount(
        account_id=fee_id,
        discount_type_id=request.discount_type_id,
        amount=request.amount,
        created_by=request.created_by,
        reason=request.reason,
        approved_by=request.approved_by,
    )
    return _mutation_response(result)


@router.post("/enrollment-fees/{fee_id}/charges", response_model=MutationResponse, status_code=201)
async def add_charge(
    request: ChargeCreateRequest,
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """추가 부과금 등록"""
    result = await service.add_charge(
        account_id=fee_id,
        name=request.name,
        amount=request.amount,
        created_by=request.created_by,
        reason=request.reason,
        due_date=request.due_date,
    )
    return _mutation_response(result)


@router.post("/enrollment-fees/{fee_id}/arrears", response_model=MutationResponse, status_code=201)
async def add_arrear(
    request: ArrearCreateRequest,
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """이월 미납금 등록"""
    result = await service.add_arrear(
        account_id=fee_id,
        amount=request.amount,
        reason=request.reason,
        created_by=request.created_by,
        previous_fee_id=request.previous_fee_id,
        due_date=request.due_date,
    )
    return _mutation_response(result)


@router.post("/enrollment-fees/{fee_id}/transactions", response_model=MutationResponse, status_code=201)
async def add_transaction(
    request: TransactionCreateRequest,
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """납부 기록

    PAID/WAIVED 계정은 409.
    """
    result = await service.add_transaction(
        account_id=fee_id,
        amount=request.amount,
        method=request.method,
        created_by=request.created_by,
        date=request.date,
        reference=request.reference,
        notes=request.notes,
        challan_id=request.challan_id,
    )
    return _mutation_response(result)


@router.get("/enrollment-fees/{fee_id}/transactions", response_model=list[dict])
async def list_transactions(
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> list[dict]:
    """납부 거래 목록 (납부일 내림차순)"""
    try:
        transactions = await service.get_transactions(fee_id)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return [t.to_dict() for t in transactions]


@router.post("/enrollment-fees/{fee_id}/challans", response_model=ChallanResponse, status_code=201)
async def issue_challan(
    request: ChallanCreateRequest,
    fee_id: str = Path(..., description="계정 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> ChallanResponse:
    """납부 고지서 발행"""
    result = await service.issue_challan(
        account_id=fee_id,
        total_amount=request.total_amount,
        created_by=request.created_by,
        due_date=request.due_date,
    )
    return ChallanResponse.from_domain(unwrap_or_raise(result))


# =========================================================================
# 원장 항목 삭제 (소프트 삭제)
# =========================================================================

@router.delete("/discounts/{discount_id}", response_model=MutationResponse)
async def remove_discount(
    discount_id: str = Path(..., description="할인 ID"),
    removed_by: str | None = Query(default=None, description="삭제 수행자 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """할인 삭제"""
    return _mutation_response(await service.remove_discount(discount_id, removed_by=removed_by))


@router.delete("/charges/{charge_id}", response_model=MutationResponse)
async def remove_charge(
    charge_id: str = Path(..., description="부과금 ID"),
    removed_by: str | None = Query(default=None, description="삭제 수행자 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """부과금 삭제"""
    return _mutation_response(await service.remove_charge(charge_id, removed_by=removed_by))


@router.delete("/arrears/{arrear_id}", response_model=MutationResponse)
async def remove_arrear(
    arrear_id: str = Path(..., description="이월 미납금 ID"),
    removed_by: str | None = Query(default=None, description="삭제 수행자 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """이월 미납금 삭제"""
    return _mutation_response(await service.remove_arrear(arrear_id, removed_by=removed_by))


# =========================================================================
# 영수증
# =========================================================================

@router.get("/transactions/{transaction_id}/receipt", response_model=ReceiptResponse)
async def get_receipt(
    transaction_id: str = Path(..., description="거래 ID"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> ReceiptResponse:
    """납부 영수증"""
    try:
        receipt = await service.generate_receipt(transaction_id)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return ReceiptResponse.from_domain(receipt)
