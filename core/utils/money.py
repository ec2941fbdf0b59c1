"""
금액 유틸리티

금액은 항상 Decimal로 다루고 DB에는 문자열로 저장.
float 입력은 str을 거쳐 변환하여 이진 오차를 피함.
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from core.constants import Money


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """금액 값을 Decimal로 변환
    
    Args:
        value: Decimal, int, float, 문자열
        
    Returns:
        Decimal 값
        
    Raises:
        ValueError: 숫자로 해석할 수 없는 경우
    """
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """금액 합계 (빈 목록은 0)"""
    return sum(amounts, Money.ZERO)


def format_amount(amount: Decimal) -> str:
    """저장/표시용 문자열 (소수점 2자리 고정)"""
    return str(amount.quantize(Money.QUANTUM))
