"""
원장 오류 → HTTP 응답 매핑

NOT_FOUND 404, VALIDATION 400, ALREADY_SETTLED 409, PERSISTENCE_CONFLICT 503
"""

from typing import TypeVar

from fastapi import HTTPException

from core.domain.errors import ErrorKind, LedgerError, Result

T = TypeVar("T")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.ALREADY_SETTLED: 409,
    ErrorKind.PERSISTENCE_CONFLICT: 503,
}


def to_http_exception(error: LedgerError) -> HTTPException:
    """LedgerError를 HTTPException으로 변환

    detail: {"kind": ErrorKind, "message": 사람이 읽는 메시지}
    """
    return HTTPException(
        status_code=STATUS_BY_KIND.get(error.kind, 400),
        detail={"kind": error.kind.value, "message": error.message},
    )


def unwrap_or_raise(result: Result[T]) -> T:
    """성공 값 반환, 실패면 HTTPException 발생"""
    if result.error is not None:
        raise to_http_exception(result.error)
    return result.value  # type: ignore[return-value]
