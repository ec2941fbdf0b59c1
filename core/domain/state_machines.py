"""
State Machines

납부 상태(PaymentStatus) 전이 관리.
납부 추가에 의한 전이는 단조 증가 (PENDING → PARTIAL → PAID).
WAIVED는 관리자 조치로만 진입하며 이후 자동 전이 없음.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Generic, TypeVar

from core.types import PaymentStatus

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)


class StateMachineError(Exception):
    """허용되지 않은 상태 전이

    Attributes:
        from_state: 전이 전 상태
        to_state: 요청된 상태
    """

    def __init__(self, message: str, from_state: Enum, to_state: Enum):
        super().__init__(message)
        self.from_state = from_state
        self.to_state = to_state


class StateMachine(Generic[S]):
    """Enum 상태 머신

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 {from_state: {to_states}}. 키가 없으면 종료 상태.
        name: 머신 이름 (오류 메시지/로깅용)
    """

    def __init__(
        self,
        initial_state: S,
        transitions: Mapping[S, frozenset[S]],
        name: str = "StateMachine",
    ):
        self._state = initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[S, S]] = []

    @property
    def state(self) -> S:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not self._transitions.get(self._state)

    def can_transition(self, to_state: S) -> bool:
        return to_state in self._transitions.get(self._state, frozenset())

    def transition(self, to_state: S) -> S:
        """상태 전이

        Raises:
            StateMachineError: 허용되지 않은 전이 (상태는 그대로)
        """
        if not self.can_transition(to_state):
            allowed = sorted(s.value for s in self._transitions.get(self._state, frozenset()))
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state.value} to {to_state.value}. "
                f"Allowed: {allowed}",
                from_state=self._state,
                to_state=to_state,
            )

        self._history.append((self._state, to_state))
        if to_state != self._state:
            logger.debug(f"{self._name}: {self._state.value} → {to_state.value}")
        self._state = to_state
        return to_state

    @property
    def history(self) -> list[tuple[S, S]]:
        """전이 이력 (복사본)"""
        return list(self._history)


_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PENDING, PaymentStatus.PARTIAL, PaymentStatus.PAID, PaymentStatus.WAIVED}
    ),
    PaymentStatus.PARTIAL: frozenset({PaymentStatus.PARTIAL, PaymentStatus.PAID, PaymentStatus.WAIVED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.WAIVED}),
}


class PaymentStatusMachine(StateMachine[PaymentStatus]):
    """납부 상태 머신

    전이 규칙:
    - PENDING → PENDING/PARTIAL/PAID: 납부 추가
    - PARTIAL → PARTIAL/PAID: 추가 납부
    - PENDING/PARTIAL/PAID → WAIVED: 관리자 면제
    - WAIVED: 종료 상태
    """

    def __init__(self, initial_state: PaymentStatus = PaymentStatus.PENDING):
        super().__init__(initial_state, _PAYMENT_TRANSITIONS, name="PaymentStatus")

    @property
    def is_settled(self) -> bool:
        """추가 납부 불가 상태 여부"""
        return self._state in (PaymentStatus.PAID, PaymentStatus.WAIVED)

    @property
    def is_waived(self) -> bool:
        return self._state == PaymentStatus.WAIVED

    def apply_payment(self, derived: PaymentStatus) -> PaymentStatus:
        """납부 반영 후 재계산된 상태로 전이 (WAIVED로의 진입 불가)"""
        if derived == PaymentStatus.WAIVED:
            raise StateMachineError(
                f"{self._name}: a payment cannot waive the fee",
                from_state=self._state,
                to_state=derived,
            )
        return self.transition(derived)

    def waive(self) -> PaymentStatus:
        """관리자 면제. 이미 WAIVED면 그대로 유지."""
        if self.is_waived:
            return self._state
        return self.transition(PaymentStatus.WAIVED)
