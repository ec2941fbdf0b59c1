"""
수강 수수료 / 수수료 체계 / 이력 라우트 테스트
"""

import httpx
import pytest

from core.domain.models import EnrollmentFee

ADMIN = "admin-1"
CLERK = "clerk-7"


async def _create_fee(client: httpx.AsyncClient, enrollment_id: str = "enr-web") -> dict:
    response = await client.post(
        "/api/enrollment-fees",
        json={"enrollment_id": enrollment_id, "fee_structure_id": "fs-grade5", "created_by": ADMIN},
    )
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """헬스 체크"""

    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestFeeStructureRoutes:
    """수수료 체계 / 할인 유형 라우트"""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client: httpx.AsyncClient) -> None:
        created = await client.post(
            "/api/fee-structures",
            json={
                "name": "Grade 6",
                "program_campus_id": "pc-002",
                "components": [
                    {"name": "Tuition", "type": "TUITION", "amount": "1200"},
                    {"name": "Sports", "type": "SPORTS", "amount": "50.25"},
                ],
                "created_by": ADMIN,
            },
        )

        assert created.status_code == 201
        body = created.json()
        assert body["base_amount"] == "1250.25"
        assert body["status"] == "ACTIVE"

        fetched = await client.get(f"/api/fee-structures/{body['id']}")
        assert fetched.json()["components"][1]["type"] == "SPORTS"

    @pytest.mark.asyncio
    async def test_list_filtered(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/fee-structures", params={"program_campus_id": "pc-001"})

        assert [s["id"] for s in response.json()] == ["fs-grade5"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: httpx.AsyncClient) -> None:
        updated = await client.put("/api/fee-structures/fs-grade5", json={"name": "Grade 5 (2026)"})
        deleted = await client.delete("/api/fee-structures/fs-grade5")
        listed = await client.get("/api/fee-structures")

        assert updated.json()["name"] == "Grade 5 (2026)"
        assert deleted.json()["status"] == "DELETED"
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_discount_types(self, client: httpx.AsyncClient) -> None:
        created = await client.post("/api/discount-types", json={"name": "Sibling"})
        listed = await client.get("/api/discount-types")

        assert created.status_code == 201
        assert sorted(d["name"] for d in listed.json()) == ["Scholarship", "Sibling"]


class TestEnrollmentFeeRoutes:
    """계정 및 원장 항목 라우트"""

    @pytest.mark.asyncio
    async def test_full_flow(self, client: httpx.AsyncClient, discount_type_id: str) -> None:
        fee = await _create_fee(client)
        assert fee["final_amount"] == "1000"
        assert fee["payment_status"] == "PENDING"

        discount = await client.post(
            f"/api/enrollment-fees/{fee['id']}/discounts",
            json={"discount_type_id": discount_type_id, "amount": "200", "created_by": ADMIN},
        )
        assert discount.status_code == 201
        assert discount.json()["item"]["kind"] == "DISCOUNT"
        assert discount.json()["account"]["final_amount"] == "800"

        charge = await client.post(
            f"/api/enrollment-fees/{fee['id']}/charges",
            json={"name": "Lab", "amount": "100", "created_by": CLERK},
        )
        assert charge.json()["account"]["final_amount"] == "900"

        removed = await client.delete(f"/api/charges/{charge.json()['item']['id']}", params={"removed_by": ADMIN})
        assert removed.status_code == 200
        assert removed.json()["item"]["removed_by"] == ADMIN
        assert removed.json()["account"]["final_amount"] == "800"

        arrear = await client.post(
            f"/api/enrollment-fees/{fee['id']}/arrears",
            json={"amount": "50", "reason": "Previous term", "created_by": CLERK},
        )
        assert arrear.json()["account"]["final_amount"] == "850"

        payment = await client.post(
            f"/api/enrollment-fees/{fee['id']}/transactions",
            json={"amount": "400", "method": "CASH", "created_by": CLERK},
        )
        assert payment.status_code == 201
        assert payment.json()["account"]["payment_status"] == "PARTIAL"

        detail = (await client.get(f"/api/enrollment-fees/{fee['id']}")).json()
        assert detail["total_paid"] == "400"
        assert detail["balance_due"] == "450"
        assert len(detail["discounts"]) == 1
        assert detail["charges"] == []

    @pytest.mark.asyncio
    async def test_lookup_by_enrollment(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        response = await client.get(f"/api/enrollments/{account.enrollment_id}/fee")

        assert response.status_code == 200
        assert response.json()["account"]["id"] == account.id

    @pytest.mark.asyncio
    async def test_update_waives(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        response = await client.patch(
            f"/api/enrollment-fees/{account.id}",
            json={"updated_by": ADMIN, "payment_status": "WAIVED", "notes": "hardship"},
        )

        assert response.status_code == 200
        assert response.json()["account"]["payment_status"] == "WAIVED"
        assert response.json()["account"]["notes"] == "hardship"

    @pytest.mark.asyncio
    async def test_transactions_and_receipt(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        for amount in ("100", "250"):
            await client.post(
                f"/api/enrollment-fees/{account.id}/transactions",
                json={"amount": amount, "method": "CASH", "created_by": CLERK},
            )

        transactions = (await client.get(f"/api/enrollment-fees/{account.id}/transactions")).json()
        assert [t["amount"] for t in transactions] == ["250", "100"]

        receipt = await client.get(f"/api/transactions/{transactions[0]['id']}/receipt")
        body = receipt.json()
        assert body["receipt_number"] == transactions[0]["id"]
        assert body["fee_structure_name"] == "Structure fs-grade5"
        assert body["total_paid"] == "350.00"
        assert body["balance_due"] == "650.00"

    @pytest.mark.asyncio
    async def test_challan(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        response = await client.post(
            f"/api/enrollment-fees/{account.id}/challans",
            json={"total_amount": "500", "created_by": ADMIN, "due_date": "2026-11-30"},
        )

        assert response.status_code == 201
        assert response.json()["payment_status"] == "PENDING"
        assert response.json()["due_date"] == "2026-11-30"


class TestHistoryRoutes:
    """이력 라우트"""

    @pytest.mark.asyncio
    async def test_history_paging(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        await client.post(
            f"/api/enrollment-fees/{account.id}/charges",
            json={"name": "Bus", "amount": "30", "created_by": CLERK},
        )

        full = (await client.get(f"/api/enrollment-fees/{account.id}/history")).json()
        page = (await client.get(f"/api/enrollment-fees/{account.id}/history", params={"limit": 1, "offset": 1})).json()

        assert [e["action"] for e in full["items"]] == ["CHARGE_ADDED", "FEE_ASSIGNED"]
        assert [e["action"] for e in page["items"]] == ["FEE_ASSIGNED"]
        assert page["limit"] == 1
        assert page["offset"] == 1

    @pytest.mark.asyncio
    async def test_limit_validated(self, client: httpx.AsyncClient, account: EnrollmentFee) -> None:
        response = await client.get(f"/api/enrollment-fees/{account.id}/history", params={"limit": 0})

        assert response.status_code == 422
