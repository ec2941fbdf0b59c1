#!/usr/bin/env python3
"""
수수료 원장 정합성 검사

모든 계정을 활성 원장 항목으로 재계산하여 저장된 스냅샷과 비교.
불일치가 있으면 목록을 출력하고 종료 코드 1 반환.

사용법:
    python scripts/verify_ledger.py
    python scripts/verify_ledger.py --db data/fee_ledger.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.ledger.drift import scan_ledger
from core.logging import setup_logging
from core.storage.fee_store import FeeStore

logger = logging.getLogger(__name__)


async def main(db_path: Path) -> int:
    async with SQLiteAdapter(db_path, readonly=True) as db:
        store = FeeStore(db)
        async with store.snapshot():
            accounts = await store.list_accounts()
            drifts = await scan_ledger(store)

    print(f"DB Path: {db_path}")
    print(f"Accounts checked: {len(accounts)}")

    if not drifts:
        print("No drift ✓")
        return 0

    print(f"\nDrift detected ({len(drifts)}):")
    for d in drifts:
        print(f"  - {d.account_id} (enrollment {d.enrollment_id}): {d.description}")
        print(f"      expected: {d.expected}")
        print(f"      actual:   {d.actual}")
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="수수료 원장 정합성 검사")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 파일 경로 (기본: settings.yaml의 database.path)",
    )
    args = parser.parse_args()

    setup_logging("scripts")
    sys.exit(asyncio.run(main(args.db or get_settings().db_path)))
