"""
수수료 원장 변경 서비스

할인/부과금/이월미납/납부 항목 추가·삭제와 수수료 체계 변경(rebase)을 조율.

모든 변경 연산은 다음 순서로 하나의 트랜잭션에서 실행:
    계정 잠금 → 계정 조회 → 검증 → 항목 기록
    → 활성 항목 전체 조회 → recalculate() → 계정 저장(version 검사)
    → 이력 기록 → 커밋

동시성:
- 계정별 asyncio.Lock으로 같은 프로세스 내 동시 변경 직렬화
- 저장 시 version 불일치(다른 프로세스의 변경)는 PersistenceConflictError
  → 제한 횟수만큼 처음부터 재시도
- 서로 다른 계정은 서비스 잠금을 공유하지 않음. 단, SQLite 저장소는
  연결/DB 파일 단위로 쓰기 트랜잭션을 직렬화 (BEGIN IMMEDIATE)
- 조회는 repository.snapshot() 안에서 실행되어 미커밋 변경을 보지 않음

사용 예시:
```python
service = FeeLedgerService(repository, HistoryJournal(repository))

result = await service.add_discount(account_id, "scholarship", Decimal("100"), "admin-1")
if not result.ok:
    print(result.error.kind, result.error.message)
```
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

from core.constants import Defaults, Money
from core.domain.errors import (
    AlreadySettledError,
    LedgerError,
    NotFoundError,
    PersistenceConflictError,
    Result,
    ValidationError,
)
from core.domain.models import (
    AccountDetail,
    Arrear,
    Challan,
    Charge,
    Discount,
    EnrollmentFee,
    HistoryEntry,
    MutationOutcome,
    Receipt,
    Transaction,
    new_id,
)
from core.domain.state_machines import PaymentStatusMachine, StateMachineError
from core.ledger.calculator import derive_payment_status, recalculate, validate_discount_total
from core.ledger.journal import HistoryJournal, balance_change
from core.types import HistoryAction, LineItemKind, PaymentStatus
from core.utils.money import sum_amounts, to_decimal
from core.utils.timezone import ensure_utc, now_utc

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 항목 종류별 (표시 이름, 삭제 이력 액션)
_REMOVAL_ACTIONS: dict[LineItemKind, tuple[str, HistoryAction]] = {
    LineItemKind.DISCOUNT: ("Discount", HistoryAction.DISCOUNT_REMOVED),
    LineItemKind.CHARGE: ("Charge", HistoryAction.CHARGE_REMOVED),
    LineItemKind.ARREAR: ("Arrear", HistoryAction.ARREAR_REMOVED),
}


def _positive_amount(value: Decimal | int | float | str, label: str) -> Decimal:
    """금액 파싱 + 양수 검증"""
    try:
        amount = to_decimal(value)
    except ValueError as e:
        raise ValidationError(f"{label} amount is not a number: {value!r}") from e
    if not amount.is_finite() or amount <= Money.ZERO:
        raise ValidationError(f"{label} amount must be greater than zero: {amount}")
    return amount


def _required_text(value: str | None, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message)
    return value.strip()


class FeeLedgerService:
    """수수료 원장 서비스

    변경 연산은 Result[MutationOutcome]을 반환.
    LedgerError는 서비스 경계에서 한 번만 Result.failure로 변환되며
    그 외 예외는 그대로 전파됨.

    Args:
        repository: 원장 저장소
        journal: 이력 저널
        max_conflict_retries: 충돌 시 최대 시도 횟수
        retry_delay_sec: 재시도 기본 대기 시간 (시도 횟수에 비례 증가)
    """

    def __init__(
        self,
        repository: ILedgerRepository,
        journal: HistoryJournal,
        max_conflict_retries: int = Defaults.MAX_CONFLICT_RETRIES,
        retry_delay_sec: float = Defaults.RETRY_DELAY_SEC,
    ):
        if max_conflict_retries < 1:
            raise ValueError(f"max_conflict_retries must be >= 1: {max_conflict_retries}")

        self.repository = repository
        self.journal = journal
        self.max_conflict_retries = max_conflict_retries
        self.retry_delay_sec = retry_delay_sec

        self._account_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    # =========================================================================
    # 실행 기반
    # =========================================================================

    @asynccontextmanager
    async def _account_lock(self, key: str) -> AsyncIterator[None]:
        """계정별 잠금

        잠금은 최초 요청 시 생성되고, 보유자와 대기자가 모두 사라지면 제거됨.
        """
        lock = self._account_locks.get(key)
        if lock is None:
            lock = self._account_locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._account_locks[key]

    async def _run(
        self,
        operation: str,
        lock_key: str,
        work: Callable[[], Awaitable[T]],
    ) -> Result[T]:
        """잠금 + 트랜잭션 + 충돌 재시도로 work 실행

        Args:
            operation: 연산 이름 (로깅용)
            lock_key: 직렬화 키 (계정 ID 또는 수강 등록 ID)
            work: 트랜잭션 안에서 실행할 코루틴 팩토리

        Returns:
            Result (LedgerError는 failure로 변환)
        """
        try:
            value = await self._with_retry(operation, lock_key, work)
        except LedgerError as e:
            logger.info(
                f"{operation} rejected: {e.message}",
                extra={"lock_key": lock_key, "error_kind": e.kind.value},
            )
            return Result.failure(e)
        return Result.success(value)

    async def _with_retry(
        self,
        operation: str,
        lock_key: str,
        work: Callable[[], Awaitable[T]],
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self._account_lock(lock_key):
                    async with self.repository.transaction():
                        return await work()
            except PersistenceConflictError as e:
                if attempt >= self.max_conflict_retries:
                    logger.warning(
                        f"{operation} gave up after {attempt} attempts: {e.message}",
                        extra={"lock_key": lock_key},
                    )
                    raise
                logger.warning(
                    f"{operation} conflict, retrying ({attempt}/{self.max_conflict_retries})",
                    extra={"lock_key": lock_key},
                )
                await asyncio.sleep(self.retry_delay_sec * attempt)

    async def _load_account(self, account_id: str) -> EnrollmentFee:
        account = await self.repository.get_account(account_id)
        if account is None:
            raise NotFoundError(f"Enrollment fee with ID {account_id} not found")
        return account

    async def _active_items(
        self,
        account_id: str,
    ) -> tuple[list[Discount], list[Charge], list[Arrear], list[Transaction]]:
        """계정의 활성 항목 전체 (할인, 부과금, 이월미납, 납부)"""
        discounts = await self.repository.list_active_line_items(account_id, LineItemKind.DISCOUNT)
        charges = await self.repository.list_active_line_items(account_id, LineItemKind.CHARGE)
        arrears = await self.repository.list_active_line_items(account_id, LineItemKind.ARREAR)
        transactions = await self.repository.list_active_line_items(account_id, LineItemKind.TRANSACTION)
        return discounts, charges, arrears, transactions  # type: ignore[return-value]

    async def _rebalance(
        self,
        account: EnrollmentFee,
        payment_status: PaymentStatus | None = None,
        **changes: Any,
    ) -> EnrollmentFee:
        """활성 항목으로 파생 금액을 재계산하고 계정 저장

        Args:
            account: 현재 계정 (이 version 기준으로 저장)
            payment_status: 지정 시 파생 상태 대신 사용 (WAIVED 설정)
            **changes: base_amount 등 함께 바꿀 필드

        Returns:
            저장된 계정 (version + 1)

        Raises:
            PersistenceConflictError: version 불일치
        """
        base_amount = changes.get("base_amount", account.base_amount)
        discounts, charges, arrears, transactions = await self._active_items(account.id)

        snapshot = recalculate(
            base_amount,
            discounts,
            charges,
            arrears,
            transactions,
            current_status=account.payment_status,
        )

        updated = replace(
            account,
            discounted_amount=snapshot.discounted_amount,
            final_amount=snapshot.final_amount,
            payment_status=payment_status or snapshot.payment_status,
            updated_at=now_utc(),
            **changes,
        )
        return await self.repository.save_account(updated, expected_version=account.version)

    # =========================================================================
    # 계정 생성 / 수수료 체계 변경
    # =========================================================================

    async def create_enrollment_fee(
        self,
        enrollment_id: str,
        fee_structure_id: str,
        created_by: str,
        due_date: date | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
    ) -> Result[MutationOutcome]:
        """수강 등록에 수수료 체계 할당 (계정 생성)

        Args:
            enrollment_id: 수강 등록 ID (계정당 1개)
            fee_structure_id: 수수료 체계 ID
            created_by: 생성자
            due_date: 납부 기한
            payment_method: 기본 납부 수단
            notes: 메모
            payment_status: 초기 상태 (PENDING 또는 WAIVED)

        Returns:
            Result[MutationOutcome] (item과 account 모두 생성된 계정)
        """

        async def work() -> MutationOutcome:
            if payment_status not in (PaymentStatus.PENDING, PaymentStatus.WAIVED):
                raise ValidationError(
                    f"Initial payment status must be PENDING or WAIVED: {payment_status.value}"
                )

            structure = await self.repository.get_fee_structure(fee_structure_id)
            if structure is None or not structure.is_active:
                raise NotFoundError(f"Fee structure with ID {fee_structure_id} not found")

            existing = await self.repository.get_account_by_enrollment(enrollment_id)
            if existing is not None:
                raise ValidationError(
                    f"Enrollment {enrollment_id} already has a fee assigned ({existing.id})"
                )

            base_amount = structure.base_amount
            now = now_utc()
            account = EnrollmentFee(
                id=new_id(),
                enrollment_id=enrollment_id,
                fee_structure_id=fee_structure_id,
                base_amount=base_amount,
                discounted_amount=base_amount,
                final_amount=base_amount,
                payment_status=payment_status,
                created_by=created_by,
                due_date=due_date,
                payment_method=payment_method,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            account = await self.repository.create_account(account)

            await self.journal.record(
                account,
                HistoryAction.FEE_ASSIGNED,
                {
                    "fee_structure_id": fee_structure_id,
                    "base_amount": str(base_amount),
                    **balance_change(None, account),
                },
                created_by,
            )

            logger.info(
                "Fee assigned",
                extra={"account_id": account.id, "enrollment_id": enrollment_id},
            )
            return MutationOutcome(item=account, account=account)

        return await self._run("create_enrollment_fee", f"enrollment:{enrollment_id}", work)

    async def update_enrollment_fee(
        self,
        account_id: str,
        updated_by: str,
        fee_structure_id: str | None = None,
        due_date: date | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> Result[MutationOutcome]:
        """계정 수정 (수수료 체계 변경 시 rebase)

        fee_structure_id가 바뀌면 base_amount를 새 체계의 구성 항목 합으로
        다시 계산하고 기존 활성 할인이 새 기본 금액을 넘지 않는지 재검증.
        payment_status는 관리자 면제(WAIVED)만 허용.

        Returns:
            Result[MutationOutcome]
        """

        async def work() -> MutationOutcome:
            account = await self._load_account(account_id)
            changes: dict[str, Any] = {}

            if fee_structure_id is not None and fee_structure_id != account.fee_structure_id:
                structure = await self.repository.get_fee_structure(fee_structure_id)
                if structure is None or not structure.is_active:
                    raise NotFoundError(f"Fee structure with ID {fee_structure_id} not found")

                new_base = structure.base_amount
                discounts = await self.repository.list_active_line_items(account.id, LineItemKind.DISCOUNT)
                validate_discount_total(new_base, discounts)  # type: ignore[arg-type]

                changes["fee_structure_id"] = fee_structure_id
                changes["base_amount"] = new_base

            if due_date is not None:
                changes["due_date"] = due_date
            if payment_method is not None:
                changes["payment_method"] = payment_method
            if notes is not None:
                changes["notes"] = notes

            if payment_status is not None and payment_status != PaymentStatus.WAIVED:
                raise ValidationError(
                    f"Payment status can only be set to WAIVED, not {payment_status.value}"
                )
            if payment_status is not None:
                PaymentStatusMachine(account.payment_status).waive()

            updated = await self._rebalance(account, payment_status=payment_status, **changes)

            details: dict[str, Any] = {
                "changes": {
                    key: str(value) if not isinstance(value, str) else value
                    for key, value in changes.items()
                },
                **balance_change(account, updated),
            }
            if payment_status is not None:
                details["changes"]["payment_status"] = payment_status.value

            await self.journal.record(updated, HistoryAction.FEE_UPDATED, details, updated_by)

            logger.info(
                "Enrollment fee updated",
                extra={"account_id": account.id, "fields": sorted(details["changes"])},
            )
            return MutationOutcome(item=updated, account=updated)

        return await self._run("update_enrollment_fee", account_id, work)

    # =========================================================================
    # 할인
    # =========================================================================

    async def add_discount(
        self,
        account_id: str,
        discount_type_id: str,
        amount: Decimal | int | float | str,
        created_by: str,
        reason: str | None = None,
        approved_by: str | None = None,
    ) -> Result[MutationOutcome]:
        """할인 추가

        단일 할인 또는 활성 할인 합계가 기본 금액을 넘으면 거부되며
        항목/계정/이력 어느 것도 남지 않음 (트랜잭션 롤백).

        Args:
            account_id: 계정 ID
            discount_type_id: 할인 유형 ID
            amount: 할인 금액 (> 0)
            created_by: 생성자
            reason: 사유
            approved_by: 승인자

        Returns:
            Result[MutationOutcome]
        """

        async def work() -> MutationOutcome:
            value = _positive_amount(amount, "Discount")
            account = await self._load_account(account_id)

            discount_type = await self.repository.get_discount_type(discount_type_id)
            if discount_type is None or not discount_type.is_active:
                raise NotFoundError(f"Discount type with ID {discount_type_id} not found")

            if value > account.base_amount:
                raise ValidationError(
                    f"Discount amount ({value}) cannot exceed the base fee amount ({account.base_amount})"
                )

            discounts = await self.repository.list_active_line_items(account.id, LineItemKind.DISCOUNT)

            discount = Discount(
                id=new_id(),
                account_id=account.id,
                discount_type_id=discount_type_id,
                amount=value,
                created_by=created_by,
                reason=reason,
                approved_by=approved_by,
                created_at=now_utc(),
            )
            validate_discount_total(account.base_amount, [*discounts, discount])  # type: ignore[list-item]

            discount = await self.repository.create_line_item(discount)  # type: ignore[assignment]
            updated = await self._rebalance(account)

            await self.journal.record(
                updated,
                HistoryAction.DISCOUNT_ADDED,
                {
                    "discount_id": discount.id,
                    "discount_type_id": discount_type_id,
                    "amount": str(value),
                    **balance_change(account, updated),
                },
                created_by,
            )

            logger.info(
                f"Discount added: {value}",
                extra={"account_id": account.id, "discount_id": discount.id},
            )
            return MutationOutcome(item=discount, account=updated)

        return await self._run("add_discount", account_id, work)

    async def remove_discount(self, discount_id: str, removed_by: str | None = None) -> Result[MutationOutcome]:
        """할인 소프트 삭제"""
        return await self._remove_line_item(LineItemKind.DISCOUNT, discount_id, removed_by)

    # =========================================================================
    # 부과금
    # =========================================================================

    async def add_charge(
        self,
        account_id: str,
        name: str,
        amount: Decimal | int | float | str,
        created_by: str,
        reason: str | None = None,
        due_date: date | None = None,
    ) -> Result[MutationOutcome]:
        """추가 부과금 등록 (연체료, 교재비 등)"""

        async def work() -> MutationOutcome:
            value = _positive_amount(amount, "Charge")
            charge_name = _required_text(name, "Charge name is required")
            account = await self._load_account(account_id)

            charge = await self.repository.create_line_item(
                Charge(
                    id=new_id(),
                    account_id=account.id,
                    name=charge_name,
                    amount=value,
                    created_by=created_by,
                    reason=reason,
                    due_date=due_date,
                    created_at=now_utc(),
                )
            )
            updated = await self._rebalance(account)

            await self.journal.record(
                updated,
                HistoryAction.CHARGE_ADDED,
                {
                    "charge_id": charge.id,
                    "name": charge_name,
                    "amount": str(value),
                    **balance_change(account, updated),
                },
                created_by,
            )

            logger.info(
                f"Charge added: {charge_name} {value}",
                extra={"account_id": account.id, "charge_id": charge.id},
            )
            return MutationOutcome(item=charge, account=updated)

        return await self._run("add_charge", account_id, work)

    async def remove_charge(self, charge_id: str, removed_by: str | None = None) -> Result[MutationOutcome]:
        """부과금 소프트 삭제"""
        return await self._remove_line_item(LineItemKind.CHARGE, charge_id, removed_by)

    # =========================================================================
    # 이월 미납금
    # =========================================================================

    async def add_arrear(
        self,
        account_id: str,
        amount: Decimal | int | float | str,
        reason: str,
        created_by: str,
        previous_fee_id: str | None = None,
        due_date: date | None = None,
    ) -> Result[MutationOutcome]:
        """이월 미납금 등록

        Args:
            account_id: 계정 ID
            amount: 금액 (> 0)
            reason: 사유 (필수)
            created_by: 생성자
            previous_fee_id: 미납이 발생한 이전 계정 ID
            due_date: 납부 기한
        """

        async def work() -> MutationOutcome:
            value = _positive_amount(amount, "Arrear")
            arrear_reason = _required_text(reason, "Arrear reason is required")
            account = await self._load_account(account_id)

            arrear = await self.repository.create_line_item(
                Arrear(
                    id=new_id(),
                    account_id=account.id,
                    amount=value,
                    reason=arrear_reason,
                    created_by=created_by,
                    previous_fee_id=previous_fee_id,
                    due_date=due_date,
                    created_at=now_utc(),
                )
            )
            updated = await self._rebalance(account)

            await self.journal.record(
                updated,
                HistoryAction.ARREAR_ADDED,
                {
                    "arrear_id": arrear.id,
                    "amount": str(value),
                    "reason": arrear_reason,
                    **balance_change(account, updated),
                },
                created_by,
            )

            logger.info(
                f"Arrear added: {value}",
                extra={"account_id": account.id, "arrear_id": arrear.id},
            )
            return MutationOutcome(item=arrear, account=updated)

        return await self._run("add_arrear", account_id, work)

    async def remove_arrear(self, arrear_id: str, removed_by: str | None = None) -> Result[MutationOutcome]:
        """이월 미납금 소프트 삭제"""
        return await self._remove_line_item(LineItemKind.ARREAR, arrear_id, removed_by)

    # =========================================================================
    # 납부
    # =========================================================================

    async def add_transaction(
        self,
        account_id: str,
        amount: Decimal | int | float | str,
        method: str,
        created_by: str,
        date: datetime | None = None,
        reference: str | None = None,
        notes: str | None = None,
        challan_id: str | None = None,
    ) -> Result[MutationOutcome]:
        """납부 기록

        PAID 또는 WAIVED 계정은 AlreadySettledError로 거부.
        초과 납부는 허용되며 상태는 PAID가 됨.
        challan_id가 주어지면 고지서의 납부액/상태도 갱신.

        Args:
            account_id: 계정 ID
            amount: 납부 금액 (> 0)
            method: 납부 수단
            created_by: 기록자
            date: 납부 일시 (기본: 현재)
            reference: 영수증/이체 참조 번호
            notes: 메모
            challan_id: 연결할 고지서 ID

        Returns:
            Result[MutationOutcome]
        """

        async def work() -> MutationOutcome:
            value = _positive_amount(amount, "Transaction")
            payment_method = _required_text(method, "Payment method is required")
            account = await self._load_account(account_id)

            machine = PaymentStatusMachine(account.payment_status)
            if machine.is_settled:
                raise AlreadySettledError(
                    f"Enrollment fee {account.id} is already {account.payment_status.value}; "
                    f"transaction of {value} rejected"
                )

            challan: Challan | None = None
            if challan_id is not None:
                challan = await self.repository.get_challan(challan_id)
                if challan is None:
                    raise NotFoundError(f"Challan with ID {challan_id} not found")
                if challan.account_id != account.id:
                    raise ValidationError(
                        f"Challan {challan_id} does not belong to enrollment fee {account.id}"
                    )

            transaction = await self.repository.create_line_item(
                Transaction(
                    id=new_id(),
                    account_id=account.id,
                    amount=value,
                    method=payment_method,
                    created_by=created_by,
                    date=ensure_utc(date) if date is not None else now_utc(),
                    reference=reference,
                    notes=notes,
                    challan_id=challan_id,
                    created_at=now_utc(),
                )
            )
            updated = await self._rebalance(account)

            try:
                machine.apply_payment(updated.payment_status)
            except StateMachineError as e:
                raise ValidationError(str(e)) from e

            if challan is not None:
                paid_amount = challan.paid_amount + value
                await self.repository.save_challan(
                    replace(
                        challan,
                        paid_amount=paid_amount,
                        payment_status=derive_payment_status(paid_amount, challan.total_amount),
                        updated_at=now_utc(),
                    )
                )

            await self.journal.record(
                updated,
                HistoryAction.TRANSACTION_ADDED,
                {
                    "transaction_id": transaction.id,
                    "amount": str(value),
                    "method": payment_method,
                    "challan_id": challan_id,
                    **balance_change(account, updated),
                },
                created_by,
            )

            logger.info(
                f"Transaction added: {value} ({account.payment_status.value} → {updated.payment_status.value})",
                extra={"account_id": account.id, "transaction_id": transaction.id},
            )
            return MutationOutcome(item=transaction, account=updated)

        return await self._run("add_transaction", account_id, work)

    # =========================================================================
    # 삭제 공통
    # =========================================================================

    async def _remove_line_item(
        self,
        kind: LineItemKind,
        item_id: str,
        removed_by: str | None,
    ) -> Result[MutationOutcome]:
        """원장 항목 소프트 삭제 공통 경로

        계정 ID를 알아내기 위해 잠금 전에 한 번 조회하고,
        트랜잭션 안에서 다시 조회하여 활성 여부를 확인.
        삭제자(removed_by, 없으면 항목 생성자)는 저장된 항목과 이력에 동일하게 기록됨.
        """
        label, action = _REMOVAL_ACTIONS[kind]

        async with self.repository.snapshot():
            located = await self.repository.get_line_item(kind, item_id)
        if located is None:
            return Result.failure(NotFoundError(f"{label} with ID {item_id} not found"))

        async def work() -> MutationOutcome:
            item = await self.repository.get_line_item(kind, item_id)
            if item is None or not item.is_active:
                raise NotFoundError(f"{label} with ID {item_id} not found or already removed")

            account = await self._load_account(item.account_id)
            remover = removed_by or item.created_by
            removed = await self.repository.soft_delete_line_item(
                kind, item_id, removed_by=remover, removed_at=now_utc()
            )
            updated = await self._rebalance(account)

            await self.journal.record(
                updated,
                action,
                {
                    f"{kind.value.lower()}_id": item_id,
                    "amount": str(item.amount),
                    "removed_by": remover,
                    **balance_change(account, updated),
                },
                remover,
            )

            logger.info(
                f"{label} removed: {item.amount}",
                extra={"account_id": account.id, "item_id": item_id},
            )
            return MutationOutcome(item=removed, account=updated)

        return await self._run(f"remove_{kind.value.lower()}", located.account_id, work)

    # =========================================================================
    # 고지서
    # =========================================================================

    async def issue_challan(
        self,
        account_id: str,
        total_amount: Decimal | int | float | str,
        created_by: str,
        due_date: date | None = None,
    ) -> Result[Challan]:
        """납부 고지서 발행 (원장 변경 아님, 이력 없음)"""

        async def work() -> Challan:
            value = _positive_amount(total_amount, "Challan")
            account = await self._load_account(account_id)
            now = now_utc()
            challan = Challan(
                id=new_id(),
                account_id=account.id,
                total_amount=value,
                created_by=created_by,
                due_date=due_date,
                created_at=now,
                updated_at=now,
            )
            return await self.repository.save_challan(challan)

        return await self._run("issue_challan", account_id, work)

    # =========================================================================
    # 조회 (커밋된 상태만 보이도록 repository.snapshot() 안에서 실행)
    # =========================================================================

    async def get_account(self, account_id: str) -> EnrollmentFee:
        """계정 조회

        Raises:
            NotFoundError: 계정 없음
        """
        async with self.repository.snapshot():
            return await self._load_account(account_id)

    async def get_account_by_enrollment(self, enrollment_id: str) -> EnrollmentFee:
        async with self.repository.snapshot():
            account = await self.repository.get_account_by_enrollment(enrollment_id)
        if account is None:
            raise NotFoundError(f"Enrollment fee for enrollment {enrollment_id} not found")
        return account

    async def get_account_detail(self, account_id: str) -> AccountDetail:
        """계정 + 활성 항목"""
        async with self.repository.snapshot():
            account = await self._load_account(account_id)
            discounts, charges, arrears, _ = await self._active_items(account.id)
            transactions = await self.repository.list_transactions(account.id)
        return AccountDetail(
            account=account,
            discounts=discounts,
            charges=charges,
            arrears=arrears,
            transactions=transactions,
        )

    async def get_transactions(self, account_id: str) -> list[Transaction]:
        """납부 거래 목록 (납부일 내림차순)"""
        async with self.repository.snapshot():
            await self._load_account(account_id)
            return await self.repository.list_transactions(account_id)

    async def generate_receipt(self, transaction_id: str) -> Receipt:
        """납부 영수증 생성

        Raises:
            NotFoundError: 거래 또는 계정 없음
        """
        async with self.repository.snapshot():
            transaction = await self.repository.get_transaction(transaction_id)
            if transaction is None:
                raise NotFoundError(f"Transaction with ID {transaction_id} not found")

            account = await self._load_account(transaction.account_id)
            structure = await self.repository.get_fee_structure(account.fee_structure_id)
            transactions = await self.repository.list_transactions(account.id)

        total_paid = sum_amounts(t.amount for t in transactions)
        return Receipt(
            transaction=transaction,
            account=account,
            fee_structure_name=structure.name if structure is not None else "",
            total_paid=total_paid,
            balance_due=max(account.final_amount - total_paid, Money.ZERO),
        )

    async def get_history(
        self,
        account_id: str,
        limit: int = Defaults.HISTORY_PAGE_SIZE,
        offset: int = 0,
    ) -> list[HistoryEntry]:
        """계정 이력 (최신순)"""
        async with self.repository.snapshot():
            await self._load_account(account_id)
            return await self.journal.get_history(account_id, limit=limit, offset=offset)
