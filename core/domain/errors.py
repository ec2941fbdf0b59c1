"""
원장 도메인 오류 및 Result 타입

서비스 경계에서 예외를 Result로 변환하여 반환.
HTTP 상태 코드 매핑은 Web 레이어가 ErrorKind를 보고 결정.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """오류 분류"""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    ALREADY_SETTLED = "ALREADY_SETTLED"
    PERSISTENCE_CONFLICT = "PERSISTENCE_CONFLICT"


class LedgerError(Exception):
    """원장 오류 기본 클래스

    모든 원장 오류는 호출자가 복구 가능한 오류.
    메시지에는 대상 엔티티와 금액/임계값을 포함.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(LedgerError):
    """계정, 원장 항목, 할인 유형 등이 존재하지 않음"""

    kind = ErrorKind.NOT_FOUND


class ValidationError(LedgerError):
    """입력값 또는 불변식 위반 (금액 <= 0, 할인 초과 등)"""

    kind = ErrorKind.VALIDATION


class AlreadySettledError(LedgerError):
    """이미 완납(또는 면제)된 계정에 납부 시도"""

    kind = ErrorKind.ALREADY_SETTLED


class PersistenceConflictError(LedgerError):
    """낙관적 락 충돌 또는 DB 잠금

    서비스에서 제한 횟수만큼 재시도 후 노출.
    """

    kind = ErrorKind.PERSISTENCE_CONFLICT


@dataclass(frozen=True)
class Result(Generic[T]):
    """연산 결과

    성공 시 value, 실패 시 error 중 하나만 설정됨.

    사용 예시:
    ```python
    result = await service.add_discount(...)
    if result.ok:
        outcome = result.value
    else:
        print(result.error.kind, result.error.message)
    ```
    """

    value: T | None = None
    error: LedgerError | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: LedgerError) -> "Result[T]":
        return cls(value=None, error=error)

    @property
    def ok(self) -> bool:
        """성공 여부"""
        return self.error is None

    def unwrap(self) -> T:
        """성공 값 반환, 실패면 원래 오류를 다시 발생"""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
