"""
스토리지 모듈

수수료 원장 저장소(SQLite) 제공
"""

from core.storage.fee_store import FeeStore

__all__ = [
    "FeeStore",
]
