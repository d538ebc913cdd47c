"""
Authentication Service
OAuth2 인증 URL 생성, code 교환, 토큰 갱신 (토큰 엔드포인트 통신)

이 모듈은 계정 상태를 갖지 않습니다. 계정 등록/갱신 기록은 AuthManager 담당.
"""

import asyncio
import logging
import os
import secrets
from typing import Any, Callable, Dict, Optional, Tuple, Union
from datetime import datetime
from urllib.parse import urlencode

import aiohttp

from .errors import TokenExchangeError, TokenRefreshError
from .oauth_types import ProviderConfig, ProviderId, TokenSet
from .provider_config import ProviderRegistry
from .time_utils import expires_at_from, utc_now

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT = 10
# 최초 요청 + 일시적 오류 시 재시도 1회
MAX_ATTEMPTS = 2
# 프로바이더가 refresh token을 거부한 것으로 보는 상태 코드
REJECTED_GRANT_STATUSES = (400, 401)


def default_http_timeout() -> float:
    """OAUTH_HTTP_TIMEOUT 환경변수 (초)"""
    return float(os.getenv("OAUTH_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))


class AuthService:
    """인증 서비스 - 인증 URL 생성과 토큰 엔드포인트 호출"""

    def __init__(
        self,
        registry: ProviderRegistry,
        http_timeout: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        인증 서비스 초기화

        Args:
            registry: ProviderRegistry 인스턴스
            http_timeout: 토큰 엔드포인트 요청 타임아웃 (초)
            clock: 현재 UTC 시각 함수 (테스트용 주입)
        """
        self.registry = registry
        self.http_timeout = http_timeout if http_timeout is not None else default_http_timeout()
        self.clock = clock or utc_now
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """aiohttp 세션 관리"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
        return self.session

    def build_authorization_url(self, provider_id: Union[ProviderId, str], state: Optional[str] = None) -> str:
        """
        OAuth 인증 URL 생성 (부수효과 없음)

        Args:
            provider_id: 프로바이더
            state: 보안 검증용 state (선택)

        Returns:
            인증 URL
        """
        config = self.registry.get_config(provider_id)

        params = {
            'client_id': config.client_id,
            'redirect_uri': config.redirect_uri,
            'scope': config.scope_string,
            'response_type': 'code',
            'access_type': 'offline',
            'prompt': 'consent'
        }
        if state:
            params['state'] = state

        return f"{config.authorization_endpoint}?{urlencode(params)}"

    def start_auth_flow(self, provider_id: Union[ProviderId, str]) -> Dict[str, str]:
        """
        인증 플로우 시작 - state 생성 후 인증 URL 반환

        Returns:
            Dict: 인증 정보
                - auth_url: 프로바이더 인증 URL
                - state: 보안 검증용 state (검증은 콜백 호스트 담당)
        """
        config = self.registry.get_config(provider_id)
        state = secrets.token_urlsafe(32)
        auth_url = self.build_authorization_url(config.provider_id, state)

        logger.info(f"Auth flow started for {config.provider_id.value} with state: {state[:10]}...")

        return {
            'auth_url': auth_url,
            'state': state
        }

    async def exchange_code(self, provider_id: Union[ProviderId, str], code: str) -> TokenSet:
        """
        Authorization code를 토큰으로 교환

        Args:
            provider_id: 프로바이더
            code: 프로바이더에서 받은 인증 코드

        Returns:
            TokenSet

        Raises:
            UnknownProviderError: 등록되지 않은 프로바이더
            TokenExchangeError: 프로바이더가 code를 거부했거나 응답이 올바르지 않음
        """
        config = self.registry.get_config(provider_id)

        data = {
            'client_id': config.client_id,
            'client_secret': config.client_secret,
            'code': code,
            'grant_type': 'authorization_code',
            'redirect_uri': config.redirect_uri
        }

        issued_at = self.clock()
        try:
            status, payload = await self._post_form(config, data, TokenExchangeError)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Token exchange network error for {config.provider_id.value}: {type(e).__name__}")
            raise TokenExchangeError(f"Token exchange failed: {type(e).__name__}") from e

        if not 200 <= status < 300:
            logger.error(f"Token exchange failed for {config.provider_id.value}: {status} - {payload}")
            raise TokenExchangeError("Token exchange failed", status=status, body=payload)

        tokens = self._build_token_set(
            payload,
            issued_at,
            fallback_refresh_token=None,
            fallback_scopes=config.scopes,
            error_cls=TokenExchangeError
        )
        logger.info(f"Token exchange succeeded for {config.provider_id.value}")
        return tokens

    async def refresh_tokens(self, provider_id: Union[ProviderId, str], current: TokenSet) -> TokenSet:
        """
        refresh token으로 토큰 갱신

        Args:
            provider_id: 프로바이더
            current: 현재 TokenSet (refresh_token 필수)

        Returns:
            새로운 TokenSet. 응답에 refresh_token/scope가 없으면 기존 값을 유지

        Raises:
            TokenRefreshError: 갱신 실패. 400/401이면 reauth_required=True
        """
        config = self.registry.get_config(provider_id)

        if not current.refresh_token:
            raise TokenRefreshError("No refresh token available", reauth_required=True)

        data = {
            'client_id': config.client_id,
            'client_secret': config.client_secret,
            'refresh_token': current.refresh_token,
            'grant_type': 'refresh_token'
        }

        issued_at = self.clock()
        try:
            status, payload = await self._post_form(config, data, TokenRefreshError)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Token refresh network error for {config.provider_id.value}: {type(e).__name__}")
            raise TokenRefreshError(f"Token refresh failed: {type(e).__name__}") from e

        if not 200 <= status < 300:
            rejected = status in REJECTED_GRANT_STATUSES
            logger.error(f"Token refresh failed for {config.provider_id.value}: {status} - {payload}")
            raise TokenRefreshError(
                "Refresh token rejected" if rejected else "Token refresh failed",
                status=status,
                body=payload,
                reauth_required=rejected
            )

        return self._build_token_set(
            payload,
            issued_at,
            fallback_refresh_token=current.refresh_token,
            fallback_scopes=current.granted_scopes,
            error_cls=TokenRefreshError
        )

    async def _post_form(self, config: ProviderConfig, data: Dict[str, str], error_cls) -> Tuple[int, Any]:
        """
        토큰 엔드포인트 form POST (일시적 오류 시 1회 재시도)

        Returns:
            (status, payload) - 2xx면 JSON dict, 아니면 응답 본문 텍스트

        Raises:
            error_cls: 2xx 응답 본문이 JSON 객체가 아님 (재시도하지 않음)
            aiohttp.ClientError / asyncio.TimeoutError: 재시도 후에도 네트워크 실패
        """
        headers = {
            'Content-Type': 'application/x-www-form-urlencoded',
            'Accept': 'application/json'
        }

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                session = await self._get_session()
                async with session.post(
                    config.token_endpoint,
                    data=data,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.http_timeout)
                ) as response:
                    if 200 <= response.status < 300:
                        # Content-Type 과 무관하게 본문을 JSON으로 해석
                        try:
                            token_data = await response.json(content_type=None)
                        except ValueError:
                            token_data = None
                        if not isinstance(token_data, dict):
                            body = await response.text()
                            logger.error(f"Token endpoint returned {response.status} with a non-JSON body")
                            raise error_cls(
                                "Token response is not a JSON object",
                                status=response.status,
                                body=body
                            )
                        return response.status, token_data

                    error_text = await response.text()
                    if response.status >= 500 and attempt < MAX_ATTEMPTS:
                        logger.warning(f"Token endpoint returned {response.status}, retrying "
                                       f"({attempt}/{MAX_ATTEMPTS})")
                        continue
                    return response.status, error_text

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt >= MAX_ATTEMPTS:
                    raise
                logger.warning(f"Token endpoint request failed ({type(e).__name__}), retrying "
                               f"({attempt}/{MAX_ATTEMPTS})")

    def _build_token_set(
        self,
        token_data: Dict[str, Any],
        issued_at: datetime,
        fallback_refresh_token: Optional[str],
        fallback_scopes: Tuple[str, ...],
        error_cls
    ) -> TokenSet:
        """토큰 응답 JSON -> TokenSet (expires_in 누락은 실패로 처리)"""
        access_token = token_data.get('access_token')
        if not access_token:
            raise error_cls("Token response missing access_token")

        try:
            expires_in = int(token_data['expires_in'])
        except (KeyError, TypeError, ValueError):
            raise error_cls("Token response missing valid expires_in") from None
        if expires_in < 0:
            raise error_cls("Token response has negative expires_in")

        scope = token_data.get('scope')
        granted_scopes = tuple(scope.split()) if scope else tuple(fallback_scopes)

        return TokenSet(
            access_token=access_token,
            refresh_token=token_data.get('refresh_token') or fallback_refresh_token,
            issued_at=issued_at,
            expires_at=expires_at_from(issued_at, expires_in),
            token_type=token_data.get('token_type') or 'Bearer',
            granted_scopes=granted_scopes
        )

    async def close(self):
        """리소스 정리"""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("Auth service closed")
