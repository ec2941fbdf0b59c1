"""
원장 오류 및 Result 테스트
"""

import pytest

from core.domain.errors import (
    AlreadySettledError,
    ErrorKind,
    LedgerError,
    NotFoundError,
    PersistenceConflictError,
    Result,
    ValidationError,
)


class TestLedgerErrors:
    """오류 분류 테스트"""

    @pytest.mark.parametrize(
        "error_cls,kind",
        [
            (NotFoundError, ErrorKind.NOT_FOUND),
            (ValidationError, ErrorKind.VALIDATION),
            (AlreadySettledError, ErrorKind.ALREADY_SETTLED),
            (PersistenceConflictError, ErrorKind.PERSISTENCE_CONFLICT),
        ],
    )
    def test_kind(self, error_cls: type[LedgerError], kind: ErrorKind) -> None:
        error = error_cls("message")

        assert isinstance(error, LedgerError)
        assert error.kind == kind
        assert error.message == "message"
        assert str(error) == "message"


class TestResult:
    """Result 테스트"""

    def test_success(self) -> None:
        result = Result.success(42)

        assert result.ok is True
        assert result.value == 42
        assert result.error is None
        assert result.unwrap() == 42

    def test_failure(self) -> None:
        error = NotFoundError("Enrollment fee with ID x not found")
        result: Result[int] = Result.failure(error)

        assert result.ok is False
        assert result.value is None
        assert result.error is error

    def test_unwrap_failure_reraises(self) -> None:
        result: Result[int] = Result.failure(AlreadySettledError("already PAID"))

        with pytest.raises(AlreadySettledError, match="already PAID"):
            result.unwrap()
