"""
원장 오류 → HTTP 상태 매핑 테스트
"""

import httpx
import pytest
from fastapi import HTTPException

from adapters.mock.ledger_repository import InMemoryLedgerRepository
from core.domain.errors import (
    AlreadySettledError,
    ErrorKind,
    NotFoundError,
    PersistenceConflictError,
    Result,
    ValidationError,
)
from core.domain.models import EnrollmentFee
from web.routes._errors import STATUS_BY_KIND, to_http_exception, unwrap_or_raise

CLERK = "clerk-7"


class TestToHttpException:
    """to_http_exception 단위 테스트"""

    @pytest.mark.parametrize(
        "error,status",
        [
            (NotFoundError("missing"), 404),
            (ValidationError("bad"), 400),
            (AlreadySettledError("settled"), 409),
            (PersistenceConflictError("busy"), 503),
        ],
    )
    def test_status(self, error, status: int) -> None:
        exc = to_http_exception(error)

        assert exc.status_code == status
        assert exc.detail == {"kind": error.kind.value, "message": error.message}

    def test_every_kind_mapped(self) -> None:
        assert set(STATUS_BY_KIND) == set(ErrorKind)

    def test_unwrap(self) -> None:
        assert unwrap_or_raise(Result.success(3)) == 3

        with pytest.raises(HTTPException) as exc_info:
            unwrap_or_raise(Result.failure(NotFoundError("gone")))
        assert exc_info.value.status_code == 404


class TestRouteErrors:
    """라우트별 오류 응답"""

    @pytest.mark.asyncio
    async def test_unknown_account_404(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/enrollment-fees/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == {
            "kind": "NOT_FOUND",
            "message": "Enrollment fee with ID nope not found",
        }

    @pytest.mark.asyncio
    async def test_unknown_structure_404(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/fee-structures/nope")

        assert response.status_code == 404
        assert response.json()["detail"]["message"] == "Fee structure with ID nope not found"

    @pytest.mark.asyncio
    async def test_discount_over_base_400(
        self, client: httpx.AsyncClient, account: EnrollmentFee, discount_type_id: str
    ) -> None:
        response = await client.post(
            f"/api/enrollment-fees/{account.id}/discounts",
            json={"discount_type_id": discount_type_id, "amount": "1500", "created_by": CLERK},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "VALIDATION"
        assert "cannot exceed the base fee amount" in response.json()["detail"]["message"]

    @pytest.mark.asyncio
    async def test_payment_on_paid_account_409(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        url = f"/api/enrollment-fees/{account.id}/transactions"
        await client.post(url, json={"amount": "1000", "method": "CASH", "created_by": CLERK})

        response = await client.post(url, json={"amount": "1", "method": "CASH", "created_by": CLERK})

        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "ALREADY_SETTLED"

    @pytest.mark.asyncio
    async def test_conflict_exhausted_503(
        self, client: httpx.AsyncClient, repo: InMemoryLedgerRepository, account: EnrollmentFee
    ) -> None:
        repo.inject_conflicts(3)

        response = await client.post(
            f"/api/enrollment-fees/{account.id}/charges",
            json={"name": "Lab", "amount": "10", "created_by": CLERK},
        )

        assert response.status_code == 503
        assert response.json()["detail"]["kind"] == "PERSISTENCE_CONFLICT"

    @pytest.mark.asyncio
    async def test_removed_item_404(self, client: httpx.AsyncClient) -> None:
        response = await client.delete("/api/discounts/nope")

        assert response.status_code == 404
        assert response.json()["detail"]["message"] == "Discount with ID nope not found"

    @pytest.mark.asyncio
    async def test_invalid_body_422(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        response = await client.post(
            f"/api/enrollment-fees/{account.id}/transactions",
            json={"amount": "abc", "method": "CASH", "created_by": CLERK},
        )

        assert response.status_code == 422
