"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
여러 Web 워커 프로세스가 동시에 접근 가능하도록 설정.

쓰기 트랜잭션은 BEGIN IMMEDIATE로 시작하여 시작 시점에 쓰기 락을 잡는다.
(프로세스 간 read-modify-write 경합 방지)

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import Defaults

logger = logging.getLogger(__name__)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)
    
    Args:
        db_path: DB 파일 경로 (":memory:" 허용)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 다른 연결이 쓰기 락을 잡고 있을 때 대기 시간
        
    Returns:
        aiosqlite 연결 객체
    """
    db_path_str = str(db_path)
    
    if db_path_str != ":memory:":
        # 디렉토리가 없으면 생성
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    
    if readonly:
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        conn = await aiosqlite.connect(db_path_str)
    
    # WAL 모드 설정 (:memory: 에서는 무시됨)
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
    
    하나의 연결은 한 번에 하나의 트랜잭션만 가질 수 있으므로
    같은 어댑터를 공유하는 태스크들의 transaction()은 순차 실행된다.
    
    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: SQLite busy_timeout
    
    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()
    
    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")
    
    await adapter.close()
    ```
    """
    
    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None
    
    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None
    
    @property
    def in_transaction(self) -> bool:
        """현재 태스크가 transaction() 안에 있는지 여부"""
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()
    
    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return
        
        self._conn = await create_connection(
            self.db_path,
            self.readonly,
            self.busy_timeout_ms,
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
        return await cursor.fetchall()
    
    async def fetchone_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> dict[str, Any] | None:
        """단일 행을 {컬럼: 값} dict로 조회"""
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        if row is None:
            return None
        columns = [desc[0] for desc in cursor.description]
        return dict(zip(columns, row))
    
    async def fetchall_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """전체 행을 dict 목록으로 조회"""
        cursor = await self.execute(sql, parameters)
        rows = await cursor.fetchall()
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in rows]
    
    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()
    
    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """쓰기 트랜잭션 컨텍스트 매니저
        
        BEGIN IMMEDIATE로 시작, 성공 시 자동 커밋, 예외 시 자동 롤백.
        취소(CancelledError)/타임아웃도 롤백 대상.
        
        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        async with self._locked("BEGIN IMMEDIATE") as conn:
            yield conn
    
    @asynccontextmanager
    async def read_transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """읽기 트랜잭션 (WAL 스냅샷)
        
        BEGIN DEFERRED 후 첫 SELECT 시점의 스냅샷을 끝까지 유지하므로
        여러 SELECT가 다른 연결의 중간 커밋을 보지 않는다.
        """
        async with self._locked("BEGIN DEFERRED") as conn:
            yield conn
    
    @asynccontextmanager
    async def _locked(self, begin_sql: str) -> AsyncIterator[aiosqlite.Connection]:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        
        async with self._tx_lock:
            self._tx_owner = asyncio.current_task()
            try:
                await self._conn.execute(begin_sql)
                yield self._conn
                await self._conn.commit()
            except BaseException:
                await self._conn.rollback()
                raise
            finally:
                self._tx_owner = None
    
    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------
    
    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self
    
    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
