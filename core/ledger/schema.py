"""
Ledger 스키마 초기화

Web 시작 시 자동으로 Ledger 테이블과 View 생성.
CREATE IF NOT EXISTS / DROP VIEW IF EXISTS 패턴으로 안전하게 동작.

금액 컬럼은 Decimal 문자열(TEXT)로 저장 (REAL 사용 금지 - 정밀도 손실).
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + View)
    
    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).
    
    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await _create_ledger_views(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""
    
    # account 테이블
    # version: 잔액 조건부 업데이트(CAS)용 카운터
    await db.execute("""
        CREATE TABLE IF NOT EXISTS account (
            account_id       TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            name             TEXT NOT NULL,
            account_type     TEXT NOT NULL,
            balance          TEXT NOT NULL DEFAULT '0',
            opening_balance  TEXT NOT NULL DEFAULT '0',
            currency         TEXT NOT NULL,
            credit_limit     TEXT,
            description      TEXT,
            notes            TEXT,
            is_active        INTEGER NOT NULL DEFAULT 1,
            version          INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    
    # category 테이블 (소유권 확인용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS category (
            category_id      TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            name             TEXT NOT NULL,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    
    # payee 테이블 (소유권 확인용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS payee (
            payee_id         TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            name             TEXT NOT NULL,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    
    # ledger_transaction 테이블
    # (transaction은 SQLite 예약어라 접두사 사용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_transaction (
            transaction_id   TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            transaction_type TEXT NOT NULL,
            amount           TEXT NOT NULL,
            account_id       TEXT NOT NULL,
            to_account_id    TEXT,
            status           TEXT NOT NULL DEFAULT 'unreconciled',
            date             TEXT NOT NULL,
            category_id      TEXT,
            payee_id         TEXT,
            notes            TEXT,
            version          INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY (account_id) REFERENCES account(account_id),
            FOREIGN KEY (to_account_id) REFERENCES account(account_id),
            CHECK (
                (transaction_type = 'transfer' AND to_account_id IS NOT NULL
                    AND to_account_id <> account_id)
                OR (transaction_type <> 'transfer' AND to_account_id IS NULL)
            )
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성"""
    
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_account_user
        ON account(user_id)
    """)
    
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_transaction_account
        ON ledger_transaction(account_id)
    """)
    
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_transaction_to_account
        ON ledger_transaction(to_account_id)
    """)
    
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_transaction_user_date
        ON ledger_transaction(user_id, date)
    """)


async def _create_ledger_views(db: "SQLiteAdapter") -> None:
    """View 생성 (대시보드 조회용)"""
    
    # 계좌별 거래 건수 (출발/도착 모두 포함)
    await db.execute("DROP VIEW IF EXISTS v_account_activity")
    await db.execute("""
        CREATE VIEW v_account_activity AS
        SELECT
            a.account_id,
            a.user_id,
            a.currency,
            a.is_active,
            (
                SELECT COUNT(*) FROM ledger_transaction t
                WHERE t.account_id = a.account_id
                   OR t.to_account_id = a.account_id
            ) AS tx_count
        FROM account a
    """)
