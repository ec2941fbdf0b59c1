"""
수수료 체계 / 할인 유형 카탈로그

수수료 체계 생성·조회·수정·소프트 삭제와 할인 유형 관리.
원장 변경이 아니므로 이력을 남기지 않으며,
기존 계정의 base_amount는 update_enrollment_fee(rebase)로만 바뀜.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from core.domain.errors import NotFoundError, ValidationError
from core.domain.models import DiscountType, FeeComponent, FeeStructure, new_id
from core.types import FeeComponentType, FeeStructureStatus
from core.utils.money import to_decimal
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerRepository

logger = logging.getLogger(__name__)


def build_components(raw: Iterable[FeeComponent | Mapping[str, Any]]) -> tuple[FeeComponent, ...]:
    """구성 항목 목록 검증 및 변환

    Args:
        raw: FeeComponent 또는 {"name", "type", "amount", "description"} 매핑

    Returns:
        FeeComponent 튜플 (1개 이상)

    Raises:
        ValidationError: 빈 목록, 알 수 없는 유형, 잘못된 금액
    """
    components: list[FeeComponent] = []
    for item in raw:
        if isinstance(item, FeeComponent):
            components.append(item)
            continue
        try:
            component_type = FeeComponentType(item.get("type", FeeComponentType.MISCELLANEOUS.value))
            amount = to_decimal(item["amount"])
        except KeyError as e:
            raise ValidationError(f"Fee component is missing field {e}") from e
        except ValueError as e:
            raise ValidationError(f"Invalid fee component {item.get('name')!r}: {e}") from e
        components.append(
            FeeComponent(
                name=str(item.get("name") or ""),
                type=component_type,
                amount=amount,
                description=item.get("description"),
            )
        )

    if not components:
        raise ValidationError("Fee structure must have at least one fee component")
    return tuple(components)


class FeeCatalogService:
    """수수료 체계 / 할인 유형 서비스

    실패 시 LedgerError를 그대로 발생시킴.

    Args:
        repository: 원장 저장소
    """

    def __init__(self, repository: ILedgerRepository):
        self.repository = repository

    # -------------------------------------------------------------------------
    # 수수료 체계
    # -------------------------------------------------------------------------

    async def create_fee_structure(
        self,
        name: str,
        program_campus_id: str,
        components: Iterable[FeeComponent | Mapping[str, Any]],
        created_by: str,
        description: str | None = None,
        academic_cycle_id: str | None = None,
        term_id: str | None = None,
        is_recurring: bool = False,
        recurring_interval: str | None = None,
    ) -> FeeStructure:
        """수수료 체계 생성

        Raises:
            ValidationError: 이름 누락, 구성 항목 오류
        """
        if not name or not name.strip():
            raise ValidationError("Fee structure name is required")
        if not program_campus_id:
            raise ValidationError("Program campus ID is required")

        now = now_utc()
        structure = FeeStructure(
            id=new_id(),
            name=name.strip(),
            program_campus_id=program_campus_id,
            components=build_components(components),
            created_by=created_by,
            description=description,
            academic_cycle_id=academic_cycle_id,
            term_id=term_id,
            is_recurring=is_recurring,
            recurring_interval=recurring_interval,
            created_at=now,
            updated_at=now,
        )

        async with self.repository.transaction():
            await self.repository.save_fee_structure(structure)

        logger.info(
            f"Fee structure created: {structure.name} ({structure.base_amount})",
            extra={"structure_id": structure.id, "program_campus_id": program_campus_id},
        )
        return structure

    async def get_fee_structure(self, structure_id: str) -> FeeStructure:
        """수수료 체계 조회 (삭제된 체계 포함)"""
        async with self.repository.snapshot():
            structure = await self.repository.get_fee_structure(structure_id)
        if structure is None:
            raise NotFoundError(f"Fee structure with ID {structure_id} not found")
        return structure

    async def list_fee_structures(self, program_campus_id: str | None = None) -> list[FeeStructure]:
        """활성 수수료 체계 목록 (최신순)"""
        async with self.repository.snapshot():
            return await self.repository.list_fee_structures(program_campus_id)

    async def update_fee_structure(
        self,
        structure_id: str,
        components: Iterable[FeeComponent | Mapping[str, Any]] | None = None,
        **fields: Any,
    ) -> FeeStructure:
        """수수료 체계 수정

        Args:
            structure_id: 수정할 체계 ID
            components: 새 구성 항목 (None이면 유지)
            **fields: name, description, academic_cycle_id, term_id,
                is_recurring, recurring_interval 중 변경할 값

        Raises:
            NotFoundError: 없거나 삭제된 체계
            ValidationError: 허용되지 않은 필드, 구성 항목 오류
        """
        allowed = {"name", "description", "academic_cycle_id", "term_id", "is_recurring", "recurring_interval"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Unknown fee structure fields: {sorted(unknown)}")
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("Fee structure name is required")

        async with self.repository.transaction():
            structure = await self.repository.get_fee_structure(structure_id)
            if structure is None or not structure.is_active:
                raise NotFoundError(f"Fee structure with ID {structure_id} not found")

            changes = {key: value for key, value in fields.items() if value is not None}
            if components is not None:
                changes["components"] = build_components(components)

            updated = replace(structure, **changes, updated_at=now_utc())
            await self.repository.save_fee_structure(updated)

        logger.info(
            "Fee structure updated",
            extra={"structure_id": structure_id, "fields": sorted(changes)},
        )
        return updated

    async def delete_fee_structure(self, structure_id: str) -> FeeStructure:
        """수수료 체계 소프트 삭제 (status=DELETED)

        이미 할당된 계정에는 영향 없음.
        """
        async with self.repository.transaction():
            structure = await self.repository.get_fee_structure(structure_id)
            if structure is None:
                raise NotFoundError(f"Fee structure with ID {structure_id} not found")

            deleted = replace(structure, status=FeeStructureStatus.DELETED, updated_at=now_utc())
            await self.repository.save_fee_structure(deleted)

        logger.info("Fee structure deleted", extra={"structure_id": structure_id})
        return deleted

    # -------------------------------------------------------------------------
    # 할인 유형
    # -------------------------------------------------------------------------

    async def create_discount_type(self, name: str, description: str | None = None) -> DiscountType:
        if not name or not name.strip():
            raise ValidationError("Discount type name is required")

        discount_type = DiscountType(id=new_id(), name=name.strip(), description=description)
        async with self.repository.transaction():
            await self.repository.save_discount_type(discount_type)

        logger.info(f"Discount type created: {discount_type.name}", extra={"discount_type_id": discount_type.id})
        return discount_type

    async def list_discount_types(self) -> list[DiscountType]:
        async with self.repository.snapshot():
            return await self.repository.list_discount_types()
