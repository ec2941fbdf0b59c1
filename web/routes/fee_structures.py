"""
수수료 체계 / 할인 유형 라우트

수수료 체계 CRUD(삭제는 소프트 삭제)와 할인 유형 관리 API
"""

from fastapi import APIRouter, Depends, Path, Query

from core.domain.errors import LedgerError
from core.ledger.catalog import FeeCatalogService
from web.dependencies import get_catalog_service
from web.models.requests import (
    DiscountTypeCreateRequest,
    FeeStructureCreateRequest,
    FeeStructureUpdateRequest,
)
from web.models.responses import DiscountTypeResponse, FeeStructureResponse
from web.routes._errors import to_http_exception

router = APIRouter(prefix="/api", tags=["Fee Structures"])


@router.post("/fee-structures", response_model=FeeStructureResponse, status_code=201)
async def create_fee_structure(
    request: FeeStructureCreateRequest,
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> FeeStructureResponse:
    """수수료 체계 생성"""
    try:
        structure = await catalog.create_fee_structure(
            name=request.name,
            program_campus_id=request.program_campus_id,
            components=[c.model_dump() for c in request.components],
            created_by=request.created_by,
            description=request.description,
            academic_cycle_id=request.academic_cycle_id,
            term_id=request.term_id,
            is_recurring=request.is_recurring,
            recurring_interval=request.recurring_interval,
        )
    except LedgerError as e:
        raise to_http_exception(e) from e

    return FeeStructureResponse.from_domain(structure)


@router.get("/fee-structures", response_model=list[FeeStructureResponse])
async def list_fee_structures(
    program_campus_id: str | None = Query(default=None, description="프로그램-캠퍼스 ID 필터"),
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> list[FeeStructureResponse]:
    """활성 수수료 체계 목록 (최신순)"""
    structures = await catalog.list_fee_structures(program_campus_id)
    return [FeeStructureResponse.from_domain(s) for s in structures]


@router.get("/fee-structures/{structure_id}", response_model=FeeStructureResponse)
async def get_fee_structure(
    structure_id: str = Path(..., description="수수료 체계 ID"),
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> FeeStructureResponse:
    """수수료 체계 조회"""
    try:
        structure = await catalog.get_fee_structure(structure_id)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return FeeStructureResponse.from_domain(structure)


@router.put("/fee-structures/{structure_id}", response_model=FeeStructureResponse)
async def update_fee_structure(
    request: FeeStructureUpdateRequest,
    structure_id: str = Path(..., description="수수료 체계 ID"),
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> FeeStructureResponse:
    """수수료 체계 수정

    기존 계정의 금액은 바뀌지 않음 (계정별 rebase 필요).
    """
    fields = request.model_dump(exclude_unset=True, exclude={"components"})
    components = (
        [c.model_dump() for c in request.components] if request.components is not None else None
    )

    try:
        structure = await catalog.update_fee_structure(structure_id, components=components, **fields)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return FeeStructureResponse.from_domain(structure)


@router.delete("/fee-structures/{structure_id}", response_model=FeeStructureResponse)
async def delete_fee_structure(
    structure_id: str = Path(..., description="수수료 체계 ID"),
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> FeeStructureResponse:
    """수수료 체계 소프트 삭제"""
    try:
        structure = await catalog.delete_fee_structure(structure_id)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return FeeStructureResponse.from_domain(structure)


@router.post("/discount-types", response_model=DiscountTypeResponse, status_code=201)
async def create_discount_type(
    request: DiscountTypeCreateRequest,
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> DiscountTypeResponse:
    """할인 유형 생성"""
    try:
        discount_type = await catalog.create_discount_type(request.name, request.description)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return DiscountTypeResponse.from_domain(discount_type)


@router.get("/discount-types", response_model=list[DiscountTypeResponse])
async def list_discount_types(
    catalog: FeeCatalogService = Depends(get_catalog_service),
) -> list[DiscountTypeResponse]:
    """할인 유형 목록"""
    return [DiscountTypeResponse.from_domain(d) for d in await catalog.list_discount_types()]
