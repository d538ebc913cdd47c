"""
Authentication Manager
다중 계정 OAuth2 토큰 생애주기 관리

주의: get_valid_access_token 은 순수 조회가 아닙니다. 만료 5분 이내 토큰은
반환 전에 동기적으로 갱신하며, 계정별 잠금 안에서 수행됩니다.
"""

import asyncio
import logging
import os
import secrets
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from .account_store import AccountStore, InMemoryAccountStore, SQLiteAccountStore
from .auth_service import AuthService
from .errors import AccountNotFoundError, TokenRefreshError
from .oauth_types import Account, ProviderId, TokenSet
from .provider_config import ProviderRegistry
from .time_utils import REFRESH_BUFFER_SECONDS, is_expired, time_until_expiry, utc_now

logger = logging.getLogger(__name__)


class AuthManager:
    """인증 매니저 - 다중 계정 등록, 토큰 갱신, 상태 조회"""

    def __init__(
        self,
        registry: ProviderRegistry,
        store: Optional[AccountStore] = None,
        auth_service: Optional[AuthService] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        인증 매니저 초기화

        Args:
            registry: 프로바이더 설정 레지스트리 (시작 시 1회 생성)
            store: 계정 저장소 (None이면 메모리 저장소)
            auth_service: 토큰 엔드포인트 서비스 (None이면 registry로 생성)
            clock: 현재 UTC 시각 함수 (테스트용 주입)
        """
        self.registry = registry
        self.clock = clock or utc_now
        self.store = store if store is not None else InMemoryAccountStore()
        self.auth_service = auth_service or AuthService(registry, clock=self.clock)

        # 계정별 잠금 (만료 확인 -> 갱신 -> 저장 구간)
        self._locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "AuthManager":
        """
        환경변수로 매니저 생성 (OAUTH_DB_PATH 가 있으면 SQLite 저장소 사용)
        """
        registry = ProviderRegistry.from_env(env_file)
        db_path = os.getenv("OAUTH_DB_PATH")
        store = SQLiteAccountStore(db_path) if db_path else None
        return cls(registry, store=store)

    async def __aenter__(self) -> "AuthManager":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    def _get_active(self, account_id: str) -> Account:
        account = self.store.get(account_id)
        if account is None or not account.active:
            raise AccountNotFoundError(account_id)
        return account

    # ------------------------------------------------------------------
    # 인증 플로우
    # ------------------------------------------------------------------

    def build_authorization_url(self, provider_id: Union[ProviderId, str], state: Optional[str] = None) -> str:
        """인증 URL 생성 (계정 상태 변경 없음)"""
        return self.auth_service.build_authorization_url(provider_id, state)

    def start_auth_flow(self, provider_id: Union[ProviderId, str]) -> Dict[str, str]:
        """state 생성 + 인증 URL 반환"""
        return self.auth_service.start_auth_flow(provider_id)

    async def exchange_code(self, provider_id: Union[ProviderId, str], code: str) -> TokenSet:
        """
        Authorization code를 토큰으로 교환

        계정은 등록하지 않습니다. 호출자가 토큰을 확인한 뒤 register_account 로 등록.
        """
        return await self.auth_service.exchange_code(provider_id, code)

    def register_account(self, email_address: str, provider_id: Union[ProviderId, str], tokens: TokenSet) -> str:
        """
        인증된 계정 등록

        Args:
            email_address: 메일 주소
            provider_id: 프로바이더
            tokens: exchange_code 결과

        Returns:
            생성된 account id
        """
        config = self.registry.get_config(provider_id)
        provider = config.provider_id
        now = self.clock()

        # provider + email + 생성 시각 (ms), 같은 ms 등록 충돌 방지용 접미어
        account_id = f"{provider.value}-{email_address}-{int(now.timestamp() * 1000)}-{secrets.token_hex(3)}"

        account = Account(
            id=account_id,
            email_address=email_address,
            provider_id=provider,
            tokens=tokens,
            created_at=now,
            last_refreshed_at=now,
            active=True
        )
        self.store.add(account)

        if provider == ProviderId.OUTLOOK_LOCAL:
            logger.warning(f"🔒 SECURITY: Outlook account {email_address} configured for LOCAL access only "
                           f"(scopes: {config.scope_string})")

        logger.info(f"Account registered: {email_address} ({provider.value})")
        return account_id

    # ------------------------------------------------------------------
    # 토큰 갱신
    # ------------------------------------------------------------------

    async def refresh_token(self, account_id: str) -> TokenSet:
        """
        계정 토큰 갱신

        Raises:
            AccountNotFoundError: 없거나 비활성 계정
            TokenRefreshError: 갱신 실패 (reauth_required=True 면 계정에 재인증 표시)
        """
        self._get_active(account_id)
        async with self._lock_for(account_id):
            return await self._refresh_locked(account_id)

    async def _refresh_locked(self, account_id: str) -> TokenSet:
        account = self._get_active(account_id)

        try:
            new_tokens = await self.auth_service.refresh_tokens(account.provider_id, account.tokens)
        except TokenRefreshError as e:
            if e.reauth_required and not account.reauth_required:
                # 플래그만 기록 (갱신 전에 읽은 계정 전체를 되쓰지 않음)
                self.store.mark_reauth_required(account_id)
                logger.error(f"Re-authentication required for {account.email_address} "
                             f"({account.provider_id.value})")
            raise

        self.store.replace_tokens(account_id, new_tokens, self.clock())
        logger.info(f"Token refreshed for {account.email_address} ({account.provider_id.value})")
        return new_tokens

    async def get_valid_access_token(self, account_id: str) -> str:
        """
        유효한 액세스 토큰 반환 (만료 5분 이내면 먼저 갱신)

        동시에 여러 호출이 들어와도 계정당 갱신 요청은 한 번만 나갑니다.

        Raises:
            AccountNotFoundError: 없거나 비활성 계정
            TokenRefreshError: 갱신이 필요했으나 실패
        """
        self._get_active(account_id)
        async with self._lock_for(account_id):
            account = self._get_active(account_id)

            if is_expired(account.tokens.expires_at, REFRESH_BUFFER_SECONDS, now=self.clock()):
                logger.info(f"Refreshing token for account: {account.email_address}")
                new_tokens = await self._refresh_locked(account_id)
                return new_tokens.access_token

            return account.tokens.access_token

    # ------------------------------------------------------------------
    # 계정 관리 / 조회
    # ------------------------------------------------------------------

    async def deactivate_account(self, account_id: str) -> None:
        """
        계정 비활성화 (로컬 기록만, 프로바이더 측 토큰 폐기 없음)

        없는 계정이거나 이미 비활성이면 아무 것도 하지 않습니다.
        진행 중인 갱신이 있으면 끝난 뒤에 비활성화합니다.
        """
        account = self.store.get(account_id)
        if account is None or not account.active:
            return

        async with self._lock_for(account_id):
            account = self.store.get(account_id)
            if account is None or not account.active:
                return

            account.active = False
            self.store.update(account)
            # 비활성 계정은 다시 갱신되지 않으므로 잠금 제거
            self._locks.pop(account_id, None)

        logger.info(f"Account deactivated: {account.email_address} ({account.provider_id.value})")

    def get_account(self, account_id: str) -> Optional[Account]:
        """계정 정보 복사본 (비활성 계정 포함)"""
        return self.store.get(account_id)

    def list_accounts_by_provider(self, provider_id: Union[ProviderId, str]) -> List[Account]:
        """프로바이더별 활성 계정 목록"""
        provider = self.registry.get_config(provider_id).provider_id
        return [
            account for account in self.store.list_all()
            if account.provider_id == provider and account.active
        ]

    def is_token_valid(self, account_id: str) -> bool:
        """활성 계정이고 액세스 토큰이 아직 만료되지 않았는지 (갱신하지 않음)"""
        account = self.store.get(account_id)
        if account is None or not account.active:
            return False
        return not is_expired(account.tokens.expires_at, buffer_seconds=0, now=self.clock())

    def auth_status_summary(self) -> Dict[str, int]:
        """
        전체 계정 인증 상태

        Returns:
            Dict: total / active / need_refresh
        """
        now = self.clock()
        accounts = self.store.list_all()
        active = [account for account in accounts if account.active]
        need_refresh = [
            account for account in active
            if is_expired(account.tokens.expires_at, REFRESH_BUFFER_SECONDS, now=now)
        ]

        return {
            'total': len(accounts),
            'active': len(active),
            'need_refresh': len(need_refresh)
        }

    def get_token_status(self, account_id: str) -> Dict[str, Any]:
        """
        계정 토큰 상태 조회 (토큰 값은 포함하지 않음)

        Args:
            account_id: 계정 id

        Returns:
            토큰 상태 정보
        """
        account = self.store.get(account_id)

        if account is None:
            return {
                'status': 'not_found',
                'account_id': account_id,
                'message': 'No account found'
            }

        now = self.clock()
        tokens = account.tokens
        access_expired = is_expired(tokens.expires_at, buffer_seconds=0, now=now)
        has_refresh = bool(tokens.refresh_token)
        needs_reauth = account.reauth_required or not has_refresh

        return {
            'status': 'found',
            'account_id': account.id,
            'email_address': account.email_address,
            'provider_id': account.provider_id.value,
            'active': account.active,
            'access_token_expired': access_expired,
            'expires_at': tokens.expires_at.isoformat(),
            'expires_in': time_until_expiry(tokens.expires_at, now=now),
            'has_refresh_token': has_refresh,
            'needs_refresh': is_expired(tokens.expires_at, REFRESH_BUFFER_SECONDS, now=now) and not needs_reauth,
            'needs_reauth': needs_reauth
        }

    async def close(self):
        """리소스 정리"""
        await self.auth_service.close()
        logger.info("Auth manager closed")
