"""
FeeCatalogService 테스트

수수료 체계 생성/수정/소프트 삭제, 할인 유형 관리
"""

from decimal import Decimal

import pytest

from adapters.mock.ledger_repository import InMemoryLedgerRepository
from core.domain.errors import NotFoundError, ValidationError
from core.ledger.catalog import FeeCatalogService, build_components
from core.ledger.service import FeeLedgerService
from core.types import FeeComponentType, FeeStructureStatus

COMPONENTS = [
    {"name": "Tuition", "type": "TUITION", "amount": "1200"},
    {"name": "Sports", "type": "SPORTS", "amount": 300, "description": "Annual"},
]


class TestBuildComponents:
    """구성 항목 검증 테스트"""

    def test_from_mappings(self) -> None:
        components = build_components(COMPONENTS)

        assert len(components) == 2
        assert components[0].type == FeeComponentType.TUITION
        assert components[1].amount == Decimal("300")
        assert components[1].description == "Annual"

    def test_empty(self) -> None:
        with pytest.raises(ValidationError, match="at least one fee component"):
            build_components([])

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError, match="Invalid fee component"):
            build_components([{"name": "X", "type": "PARKING", "amount": "10"}])

    def test_missing_amount(self) -> None:
        with pytest.raises(ValidationError, match="missing field"):
            build_components([{"name": "X", "type": "TUITION"}])

    def test_non_positive_amount(self) -> None:
        with pytest.raises(ValidationError, match="greater than zero"):
            build_components([{"name": "X", "type": "TUITION", "amount": "0"}])

    def test_default_type(self) -> None:
        components = build_components([{"name": "Misc", "amount": "5"}])

        assert components[0].type == FeeComponentType.MISCELLANEOUS


class TestFeeStructures:
    """수수료 체계 관리 테스트"""

    @pytest.mark.asyncio
    async def test_create(self, catalog: FeeCatalogService) -> None:
        structure = await catalog.create_fee_structure(
            "Grade 6", "pc-002", COMPONENTS, "admin", academic_cycle_id="2026", is_recurring=True,
            recurring_interval="MONTHLY",
        )

        assert structure.base_amount == Decimal("1500")
        assert structure.status == FeeStructureStatus.ACTIVE
        assert (await catalog.get_fee_structure(structure.id)) == structure

    @pytest.mark.asyncio
    async def test_name_required(self, catalog: FeeCatalogService) -> None:
        with pytest.raises(ValidationError, match="name is required"):
            await catalog.create_fee_structure(" ", "pc-002", COMPONENTS, "admin")

    @pytest.mark.asyncio
    async def test_list_by_program_campus(self, catalog: FeeCatalogService) -> None:
        await catalog.create_fee_structure("Grade 6", "pc-002", COMPONENTS, "admin")
        await catalog.create_fee_structure("Grade 7", "pc-002", COMPONENTS, "admin")

        all_structures = await catalog.list_fee_structures()
        campus = await catalog.list_fee_structures("pc-002")

        # conftest의 기본 체계(pc-001) 포함
        assert len(all_structures) == 3
        assert {s.name for s in campus} == {"Grade 6", "Grade 7"}

    @pytest.mark.asyncio
    async def test_update(self, catalog: FeeCatalogService) -> None:
        structure = await catalog.create_fee_structure("Grade 6", "pc-002", COMPONENTS, "admin")

        updated = await catalog.update_fee_structure(
            structure.id,
            components=[{"name": "Tuition", "type": "TUITION", "amount": "2000"}],
            name="Grade 6 (revised)",
            description=None,
        )

        assert updated.name == "Grade 6 (revised)"
        assert updated.base_amount == Decimal("2000")
        assert updated.program_campus_id == "pc-002"

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, catalog: FeeCatalogService) -> None:
        with pytest.raises(ValidationError, match="Unknown fee structure fields"):
            await catalog.update_fee_structure("fs-grade5", status="DELETED")

    @pytest.mark.asyncio
    async def test_update_deleted(self, catalog: FeeCatalogService) -> None:
        await catalog.delete_fee_structure("fs-grade5")

        with pytest.raises(NotFoundError):
            await catalog.update_fee_structure("fs-grade5", name="Again")

    @pytest.mark.asyncio
    async def test_soft_delete(self, catalog: FeeCatalogService) -> None:
        deleted = await catalog.delete_fee_structure("fs-grade5")

        assert deleted.status == FeeStructureStatus.DELETED
        assert await catalog.list_fee_structures() == []
        # 삭제된 체계도 직접 조회는 가능
        assert (await catalog.get_fee_structure("fs-grade5")).status == FeeStructureStatus.DELETED

    @pytest.mark.asyncio
    async def test_delete_unknown(self, catalog: FeeCatalogService) -> None:
        with pytest.raises(NotFoundError, match="Fee structure with ID nope not found"):
            await catalog.delete_fee_structure("nope")

    @pytest.mark.asyncio
    async def test_structure_change_does_not_touch_accounts(
        self, catalog: FeeCatalogService, service: FeeLedgerService, account
    ) -> None:
        """체계 금액이 바뀌어도 기존 계정의 base_amount는 rebase 전까지 유지"""
        await catalog.update_fee_structure(
            "fs-grade5", components=[{"name": "Tuition", "type": "TUITION", "amount": "5000"}]
        )

        stored = await service.get_account(account.id)
        assert stored.base_amount == Decimal("1000")


class TestDiscountTypes:
    """할인 유형 테스트"""

    @pytest.mark.asyncio
    async def test_create_and_list(self, catalog: FeeCatalogService, repo: InMemoryLedgerRepository) -> None:
        created = await catalog.create_discount_type("Sibling", "Second child")

        names = [d.name for d in await catalog.list_discount_types()]
        assert names == ["Scholarship", "Sibling"]
        assert repo.discount_types[created.id].description == "Second child"

    @pytest.mark.asyncio
    async def test_name_required(self, catalog: FeeCatalogService) -> None:
        with pytest.raises(ValidationError):
            await catalog.create_discount_type("")
