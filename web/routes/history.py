"""
이력 라우트

GET /api/enrollment-fees/{fee_id}/history - 계정 변경 이력 (최신순)
"""

from fastapi import APIRouter, Depends, Path, Query

from core.constants import Defaults
from core.domain.errors import LedgerError
from core.ledger.service import FeeLedgerService
from web.dependencies import get_ledger_service
from web.models.responses import HistoryEntryResponse, HistoryListResponse
from web.routes._errors import to_http_exception

router = APIRouter(prefix="/api", tags=["History"])


@router.get("/enrollment-fees/{fee_id}/history", response_model=HistoryListResponse)
async def get_history(
    fee_id: str = Path(..., description="계정 ID"),
    limit: int = Query(default=Defaults.HISTORY_PAGE_SIZE, ge=1, le=500, description="최대 개수"),
    offset: int = Query(default=0, ge=0, description="건너뛸 개수"),
    service: FeeLedgerService = Depends(get_ledger_service),
) -> HistoryListResponse:
    """계정 변경 이력"""
    try:
        entries = await service.get_history(fee_id, limit=limit, offset=offset)
    except LedgerError as e:
        raise to_http_exception(e) from e

    return HistoryListResponse(
        items=[HistoryEntryResponse.from_domain(e) for e in entries],
        limit=limit,
        offset=offset,
    )
