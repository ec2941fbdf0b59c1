"""
계정 변경 이력 저널

append-only: 기록만 가능하며 수정/삭제 API 없음.
계정 변경과 같은 트랜잭션 안에서 record()를 호출해야 함.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from core.constants import Defaults
from core.domain.models import EnrollmentFee, HistoryEntry, new_id
from core.types import HistoryAction
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerRepository

logger = logging.getLogger(__name__)


def balance_change(
    before: EnrollmentFee | None,
    after: EnrollmentFee,
) -> dict[str, Any]:
    """이력 details용 before/after 스냅샷

    Args:
        before: 변경 전 계정 (신규 생성이면 None)
        after: 변경 후 계정

    Returns:
        {"before": {...} | None, "after": {...}}
    """
    return {
        "before": before.balance_fields() if before is not None else None,
        "after": after.balance_fields(),
    }


class HistoryJournal:
    """계정 이력 저널

    Args:
        repository: 원장 저장소
    """

    def __init__(self, repository: ILedgerRepository):
        self.repository = repository

    async def record(
        self,
        account: EnrollmentFee,
        action: HistoryAction,
        details: dict[str, Any],
        actor_id: str,
    ) -> HistoryEntry:
        """이력 1건 기록

        details에는 항상 fee_id가 포함됨.

        Args:
            account: 변경된 계정 (변경 후 스냅샷)
            action: 이력 액션
            details: 항목 ID, 금액, before/after 스냅샷
            actor_id: 수행자

        Returns:
            저장된 HistoryEntry
        """
        entry = HistoryEntry(
            id=new_id(),
            account_id=account.id,
            enrollment_id=account.enrollment_id,
            action=action,
            details={"fee_id": account.id, **details},
            actor_id=actor_id,
            created_at=now_utc(),
        )
        saved = await self.repository.append_history(entry)

        logger.debug(
            f"History recorded: {action.value}",
            extra={"account_id": account.id, "actor_id": actor_id},
        )
        return saved

    async def get_history(
        self,
        account_id: str,
        limit: int = Defaults.HISTORY_PAGE_SIZE,
        offset: int = 0,
    ) -> list[HistoryEntry]:
        """이력 조회 (최신순, 같은 시각이면 나중에 기록된 것 먼저)"""
        return await self.repository.list_history(account_id, limit=limit, offset=offset)
