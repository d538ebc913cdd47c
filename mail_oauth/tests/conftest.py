"""
메일 OAuth 테스트 공통 Fixtures

테스트 시나리오:
    1. 프로바이더 설정 / 로컬 전용 스코프 정책
    2. 인증 URL 생성
    3. code 교환 / 토큰 갱신 (aiohttp 세션 모킹)
    4. 계정 등록, 만료 임박 토큰 자동 갱신, 동시 호출 직렬화
    5. 계정 저장소 (메모리 / SQLite)
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

# 프로젝트 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from mail_oauth import AuthManager, AuthService, ProviderRegistry, build_provider_config
from mail_oauth.oauth_types import ProviderConfig, ProviderId, TokenSet

FAKE_TOKEN_ENDPOINT = "https://oauth.test/token"
FAKE_AUTH_ENDPOINT = "https://oauth.test/authorize"
GMAIL_SECRET = "gmail-secret-value"
OUTLOOK_SECRET = "outlook-secret-value"


class FakeClock:
    """고정 시각 (테스트에서 advance 로 이동)"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int):
        self.now = self.now + timedelta(seconds=seconds)


class ResponseContext:
    """session.post(...) 가 반환하는 async context manager"""

    def __init__(self, response, delay: float = 0):
        self.response = response
        self.delay = delay

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.response

    async def __aexit__(self, exc_type, exc, tb):
        return False


def make_response(status: int = 200, json_data=None, text: str = ""):
    """모의 aiohttp 응답"""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data if json_data is not None else {})
    response.text = AsyncMock(return_value=text)
    return response


def respond(session, *outcomes, delay: float = 0):
    """
    session.post 호출 결과 순서 지정

    Args:
        session: 모의 세션
        outcomes: 응답 객체 또는 발생시킬 예외
        delay: 응답 지연 (동시성 테스트용)
    """
    side_effect = [
        outcome if isinstance(outcome, BaseException) else ResponseContext(outcome, delay)
        for outcome in outcomes
    ]
    session.post = MagicMock(side_effect=side_effect)
    return session.post


def token_payload(access_token="new-access-token", expires_in=3600, refresh_token=None, scope=None):
    """토큰 엔드포인트 JSON 응답"""
    payload = {
        "access_token": access_token,
        "expires_in": expires_in,
        "token_type": "Bearer"
    }
    if refresh_token is not None:
        payload["refresh_token"] = refresh_token
    if scope is not None:
        payload["scope"] = scope
    return payload


@pytest.fixture
def clock():
    """2026-01-15 09:00 UTC 고정"""
    return FakeClock(datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def registry():
    """가짜 엔드포인트를 쓰는 레지스트리"""
    gmail = ProviderConfig(
        provider_id=ProviderId.GMAIL,
        client_id="gmail-client-id",
        client_secret=GMAIL_SECRET,
        redirect_uri="http://localhost:3000/auth/gmail/callback",
        scopes=(
            "https://www.googleapis.com/auth/gmail.readonly",
            "https://www.googleapis.com/auth/gmail.send",
        ),
        authorization_endpoint=FAKE_AUTH_ENDPOINT,
        token_endpoint=FAKE_TOKEN_ENDPOINT
    )
    outlook = build_provider_config(
        ProviderId.OUTLOOK_LOCAL,
        client_id="outlook-client-id",
        client_secret=OUTLOOK_SECRET
    )
    return ProviderRegistry([gmail, outlook])


@pytest.fixture
def mock_session():
    """모의 aiohttp ClientSession"""
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    return session


@pytest.fixture
def service(registry, clock, mock_session):
    """모의 세션을 주입한 AuthService"""
    auth_service = AuthService(registry, http_timeout=10, clock=clock)
    auth_service.session = mock_session
    return auth_service


@pytest.fixture
def manager(registry, service, clock):
    """메모리 저장소 AuthManager"""
    return AuthManager(registry, auth_service=service, clock=clock)


@pytest.fixture
def make_tokens(clock):
    """clock 기준 expires_in 초 뒤 만료되는 TokenSet 생성기"""
    def _make(access_token="old-access-token", expires_in=3600, refresh_token="old-refresh-token",
              scopes=("https://www.googleapis.com/auth/gmail.readonly",)):
        return TokenSet(
            access_token=access_token,
            refresh_token=refresh_token,
            issued_at=clock(),
            expires_at=clock() + timedelta(seconds=expires_in),
            token_type="Bearer",
            granted_scopes=scopes
        )
    return _make
