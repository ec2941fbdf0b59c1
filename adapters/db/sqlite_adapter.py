"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
Web 프로세스와 스크립트가 동시에 접근 가능하도록 설정.

하나의 연결을 공유하는 코루틴들은 transaction()/snapshot()을 통해서만
DB에 접근해야 함. 잠금 밖의 execute()는 다른 코루틴이 열어 둔
트랜잭션 안에서 실행되어 미커밋 변경을 보게 됨.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)

# 쓰기 잠금 대기 시간 (초과 시 "database is locked")
DEFAULT_BUSY_TIMEOUT_MS = 5000


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    Returns:
        aiosqlite 연결 객체
    """
    # pathlib.Path를 문자열로 변환
    db_path_str = str(db_path)

    # 디렉토리가 없으면 생성
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    # 연결 생성
    if readonly:
        # 읽기 전용 모드
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        conn = await aiosqlite.connect(db_path_str)

    # WAL 모드 설정
    if not readonly:
        await conn.execute("PRAGMA journal_mode=WAL")

    # 동시 접근 설정
    await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")

    # 외래 키 제약 활성화
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    하나의 연결에서는 트랜잭션을 중첩할 수 없으므로
    transaction()은 asyncio.Lock으로 직렬화됨 (재진입 불가).

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction(immediate=True) as conn:
        await conn.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(
            self.db_path, self.readonly, self.busy_timeout_ms
        )

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if parameters:
            return await self._conn.execute(sql, parameters)
        return await self._conn.execute(sql)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외(취소 포함) 시 자동 롤백.

        Args:
            immediate: True면 BEGIN IMMEDIATE로 시작하여
                첫 읽기 전에 DB 쓰기 잠금 획득 (다른 프로세스의 쓰기와 직렬화)

        사용 예시:
        ```python
        async with adapter.transaction(immediate=True) as conn:
            await conn.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        async with self._tx_lock:
            if immediate:
                await self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self._conn
                await self._conn.commit()
            except BaseException:
                await self._conn.rollback()
                raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[aiosqlite.Connection]:
        """읽기 스냅샷 컨텍스트 매니저

        transaction()과 같은 잠금을 잡으므로 같은 연결에서 진행 중인
        쓰기 트랜잭션이 끝난 뒤에 실행됨. BEGIN(DEFERRED)으로 시작하여
        범위 안의 모든 SELECT가 같은 WAL 스냅샷을 읽고, 종료 시 롤백.
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        async with self._tx_lock:
            await self._conn.execute("BEGIN")
            try:
                yield self._conn
            finally:
                await self._conn.rollback()

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """스키마 초기화 (테이블 생성)

    금액은 모두 TEXT(Decimal 문자열)로 저장.

    Args:
        adapter: 연결된 SQLiteAdapter
    """
    # fee_structure (수수료 체계, components_json은 FeeComponent 목록)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS fee_structure (
            id                  TEXT PRIMARY KEY,
            name                TEXT NOT NULL,
            description         TEXT,
            program_campus_id   TEXT NOT NULL,
            academic_cycle_id   TEXT,
            term_id             TEXT,
            components_json     TEXT NOT NULL,
            is_recurring        INTEGER NOT NULL DEFAULT 0,
            recurring_interval  TEXT,
            status              TEXT NOT NULL DEFAULT 'ACTIVE',

            created_by          TEXT NOT NULL,
            created_at          TEXT NOT NULL,
            updated_at          TEXT NOT NULL
        )
    """)

    # discount_type
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS discount_type (
            id           TEXT PRIMARY KEY,
            name         TEXT NOT NULL,
            description  TEXT,
            is_active    INTEGER NOT NULL DEFAULT 1,
            created_at   TEXT NOT NULL
        )
    """)

    # enrollment_fee (계정, version = 낙관적 락)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS enrollment_fee (
            id                 TEXT PRIMARY KEY,
            enrollment_id      TEXT NOT NULL UNIQUE,
            fee_structure_id   TEXT NOT NULL REFERENCES fee_structure(id),

            base_amount        TEXT NOT NULL,
            discounted_amount  TEXT NOT NULL,
            final_amount       TEXT NOT NULL,
            payment_status     TEXT NOT NULL DEFAULT 'PENDING',

            due_date           TEXT,
            payment_method     TEXT,
            notes              TEXT,

            version            INTEGER NOT NULL DEFAULT 1,
            created_by         TEXT NOT NULL,
            created_at         TEXT NOT NULL,
            updated_at         TEXT NOT NULL
        )
    """)

    # fee_discount
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS fee_discount (
            id                TEXT PRIMARY KEY,
            account_id        TEXT NOT NULL REFERENCES enrollment_fee(id),
            discount_type_id  TEXT NOT NULL REFERENCES discount_type(id),
            amount            TEXT NOT NULL,
            reason            TEXT,
            approved_by       TEXT,

            created_by        TEXT NOT NULL,
            created_at        TEXT NOT NULL,
            removed_at        TEXT,
            removed_by        TEXT
        )
    """)

    # fee_charge
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS fee_charge (
            id           TEXT PRIMARY KEY,
            account_id   TEXT NOT NULL REFERENCES enrollment_fee(id),
            name         TEXT NOT NULL,
            amount       TEXT NOT NULL,
            reason       TEXT,
            due_date     TEXT,

            created_by   TEXT NOT NULL,
            created_at   TEXT NOT NULL,
            removed_at   TEXT,
            removed_by   TEXT
        )
    """)

    # fee_arrear
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS fee_arrear (
            id               TEXT PRIMARY KEY,
            account_id       TEXT NOT NULL REFERENCES enrollment_fee(id),
            amount           TEXT NOT NULL,
            reason           TEXT NOT NULL,
            previous_fee_id  TEXT,
            due_date         TEXT,

            created_by       TEXT NOT NULL,
            created_at       TEXT NOT NULL,
            removed_at       TEXT,
            removed_by       TEXT
        )
    """)

    # fee_challan (납부 고지서)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS fee_challan (
            id              TEXT PRIMARY KEY,
            account_id      TEXT NOT NULL REFERENCES enrollment_fee(id),
            total_amount    TEXT NOT NULL,
            paid_amount     TEXT NOT NULL DEFAULT '0',
            payment_status  TEXT NOT NULL DEFAULT 'PENDING',
            due_date        TEXT,

            created_by      TEXT NOT NULL,
            created_at      TEXT NOT NULL,
            updated_at      TEXT NOT NULL
        )
    """)

    # fee_transaction (삭제 없음)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS fee_transaction (
            id           TEXT PRIMARY KEY,
            account_id   TEXT NOT NULL REFERENCES enrollment_fee(id),
            amount       TEXT NOT NULL,
            method       TEXT NOT NULL,
            txn_date     TEXT NOT NULL,
            reference    TEXT,
            notes        TEXT,
            challan_id   TEXT REFERENCES fee_challan(id),

            created_by   TEXT NOT NULL,
            created_at   TEXT NOT NULL
        )
    """)

    # enrollment_history (append-only, 계정은 ID로만 참조)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS enrollment_history (
            seq            INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_id       TEXT NOT NULL UNIQUE,
            account_id     TEXT NOT NULL,
            enrollment_id  TEXT NOT NULL,
            action         TEXT NOT NULL,
            details_json   TEXT NOT NULL,
            actor_id       TEXT NOT NULL,
            created_at     TEXT NOT NULL
        )
    """)

    # 인덱스 생성
    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_fee_structure_program
        ON fee_structure(program_campus_id, status)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_fee_discount_account
        ON fee_discount(account_id, removed_at)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_fee_charge_account
        ON fee_charge(account_id, removed_at)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_fee_arrear_account
        ON fee_arrear(account_id, removed_at)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_fee_transaction_account
        ON fee_transaction(account_id, txn_date)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_enrollment_history_account
        ON enrollment_history(account_id, created_at)
    """)

    await adapter.commit()

    logger.info("스키마 초기화 완료")
