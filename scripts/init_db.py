#!/usr/bin/env python3
"""
수수료 원장 DB 스키마 초기화

사용법:
    python scripts/init_db.py
    python scripts/init_db.py --db data/other.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.logging import setup_logging

logger = logging.getLogger(__name__)

REQUIRED_TABLES = [
    "fee_structure",
    "discount_type",
    "enrollment_fee",
    "fee_discount",
    "fee_charge",
    "fee_arrear",
    "fee_transaction",
    "fee_challan",
    "enrollment_history",
]


async def main(db_path: Path) -> int:
    """스키마 생성 후 테이블 확인

    Returns:
        종료 코드 (0: 성공, 1: 테이블 누락)
    """
    logger.info(f"스키마 초기화 시작: {db_path}")

    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)

        missing = [t for t in REQUIRED_TABLES if not await db.table_exists(t)]
        if missing:
            logger.error(f"테이블 누락: {missing}")
            return 1

    logger.info(f"스키마 초기화 완료 ✓ ({len(REQUIRED_TABLES)}개 테이블)")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="수수료 원장 DB 스키마 초기화")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 파일 경로 (기본: settings.yaml의 database.path)",
    )
    args = parser.parse_args()

    setup_logging("scripts")
    sys.exit(asyncio.run(main(args.db or get_settings().db_path)))
