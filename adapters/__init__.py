"""
어댑터 레이어

외부 자원(DB 등)과의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import ILedgerRepository

__all__ = [
    "ILedgerRepository",
]
