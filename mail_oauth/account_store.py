"""
Account Store
계정 저장소 - 메모리 저장소와 SQLite 저장소가 같은 계약을 구현

계약:
    - get/list_all 은 항상 복사본을 반환 (내부 상태 참조 노출 금지)
    - replace_tokens 는 tokens 와 last_refreshed_at 을 한 번에 교체
    - mark_reauth_required 는 재인증 플래그만 기록
    - 물리 삭제 없음 (비활성화는 update 로 active=False 저장)
"""

import logging
import os
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .oauth_types import Account, TokenSet

logger = logging.getLogger(__name__)


@runtime_checkable
class AccountStore(Protocol):
    """계정 저장소 프로토콜"""

    def get(self, account_id: str) -> Optional[Account]:
        ...

    def add(self, account: Account) -> None:
        ...

    def replace_tokens(self, account_id: str, tokens: TokenSet, refreshed_at: datetime) -> None:
        ...

    def mark_reauth_required(self, account_id: str) -> None:
        ...

    def update(self, account: Account) -> None:
        ...

    def list_all(self) -> List[Account]:
        ...


class InMemoryAccountStore:
    """메모리 저장소 (프로세스 재시작 시 유지되지 않음)"""

    def __init__(self):
        self._accounts: Dict[str, Account] = {}

    def get(self, account_id: str) -> Optional[Account]:
        account = self._accounts.get(account_id)
        return account.model_copy(deep=True) if account else None

    def add(self, account: Account) -> None:
        if account.id in self._accounts:
            raise ValueError(f"Account already exists: {account.id}")
        self._accounts[account.id] = account.model_copy(deep=True)

    def replace_tokens(self, account_id: str, tokens: TokenSet, refreshed_at: datetime) -> None:
        current = self._accounts[account_id]
        self._accounts[account_id] = current.model_copy(update={
            'tokens': tokens,
            'last_refreshed_at': refreshed_at,
            'reauth_required': False
        })

    def mark_reauth_required(self, account_id: str) -> None:
        current = self._accounts[account_id]
        self._accounts[account_id] = current.model_copy(update={'reauth_required': True})

    def update(self, account: Account) -> None:
        if account.id not in self._accounts:
            raise KeyError(account.id)
        self._accounts[account.id] = account.model_copy(deep=True)

    def list_all(self) -> List[Account]:
        return [account.model_copy(deep=True) for account in self._accounts.values()]


class SQLiteAccountStore:
    """SQLite 저장소 - 토큰 묶음은 JSON 컬럼으로 저장"""

    def __init__(self, db_path: str = "database/oauth_accounts.db"):
        """
        데이터베이스 초기화

        Args:
            db_path: 데이터베이스 파일 경로
        """
        self.db_path = db_path
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        self.ensure_tables()

    def ensure_tables(self):
        """oauth_accounts 테이블 생성"""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS oauth_accounts (
                    account_id TEXT PRIMARY KEY,
                    email_address TEXT NOT NULL,
                    provider_id TEXT NOT NULL,
                    tokens TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    last_refreshed_at TIMESTAMP NOT NULL,
                    active INTEGER NOT NULL DEFAULT 1,
                    reauth_required INTEGER NOT NULL DEFAULT 0
                );

                CREATE INDEX IF NOT EXISTS idx_oauth_accounts_provider ON oauth_accounts(provider_id);
            """)
            conn.commit()
        finally:
            conn.close()

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            id=row['account_id'],
            email_address=row['email_address'],
            provider_id=row['provider_id'],
            tokens=TokenSet.model_validate_json(row['tokens']),
            created_at=datetime.fromisoformat(row['created_at']),
            last_refreshed_at=datetime.fromisoformat(row['last_refreshed_at']),
            active=bool(row['active']),
            reauth_required=bool(row['reauth_required'])
        )

    def get(self, account_id: str) -> Optional[Account]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            row = conn.execute(
                "SELECT * FROM oauth_accounts WHERE account_id = ?",
                (account_id,)
            ).fetchone()
            return self._row_to_account(row) if row else None
        finally:
            conn.close()

    def add(self, account: Account) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                INSERT INTO oauth_accounts (
                    account_id, email_address, provider_id, tokens,
                    created_at, last_refreshed_at, active, reauth_required
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                account.id,
                account.email_address,
                account.provider_id.value,
                account.tokens.model_dump_json(),
                account.created_at.isoformat(),
                account.last_refreshed_at.isoformat(),
                int(account.active),
                int(account.reauth_required)
            ))
            conn.commit()
            logger.info(f"✅ Account saved: {account.id}")
        except sqlite3.IntegrityError:
            conn.rollback()
            raise ValueError(f"Account already exists: {account.id}") from None
        finally:
            conn.close()

    def replace_tokens(self, account_id: str, tokens: TokenSet, refreshed_at: datetime) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute("""
                UPDATE oauth_accounts
                SET tokens = ?, last_refreshed_at = ?, reauth_required = 0
                WHERE account_id = ?
            """, (tokens.model_dump_json(), refreshed_at.isoformat(), account_id))
            if cursor.rowcount == 0:
                raise KeyError(account_id)
            conn.commit()
        finally:
            conn.close()

    def mark_reauth_required(self, account_id: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute(
                "UPDATE oauth_accounts SET reauth_required = 1 WHERE account_id = ?",
                (account_id,)
            )
            if cursor.rowcount == 0:
                raise KeyError(account_id)
            conn.commit()
        finally:
            conn.close()

    def update(self, account: Account) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute("""
                UPDATE oauth_accounts
                SET tokens = ?, last_refreshed_at = ?, active = ?, reauth_required = ?
                WHERE account_id = ?
            """, (
                account.tokens.model_dump_json(),
                account.last_refreshed_at.isoformat(),
                int(account.active),
                int(account.reauth_required),
                account.id
            ))
            if cursor.rowcount == 0:
                raise KeyError(account.id)
            conn.commit()
        finally:
            conn.close()

    def list_all(self) -> List[Account]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            rows = conn.execute("SELECT * FROM oauth_accounts ORDER BY created_at").fetchall()
            return [self._row_to_account(row) for row in rows]
        finally:
            conn.close()
