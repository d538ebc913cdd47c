"""
Mail OAuth Module
메일 프로바이더(Gmail, Outlook 로컬 전용) OAuth 2.0 인증과 토큰 생애주기를 처리하는 모듈입니다.
"""

from .auth_manager import AuthManager
from .auth_service import AuthService
from .account_store import AccountStore, InMemoryAccountStore, SQLiteAccountStore
from .provider_config import ProviderRegistry, build_provider_config
from .oauth_types import Account, ProviderConfig, ProviderId, TokenSet
from .errors import (
    OAuthError,
    UnknownProviderError,
    ScopePolicyError,
    TokenExchangeError,
    TokenRefreshError,
    AccountNotFoundError,
)

# 메인 인터페이스
__all__ = [
    # 클래스
    'AuthManager',           # 메인 매니저 - 다중 계정 관리
    'AuthService',           # 인증 서비스 - OAuth 플로우
    'ProviderRegistry',      # 프로바이더 설정 관리
    'AccountStore',          # 계정 저장소 프로토콜
    'InMemoryAccountStore',
    'SQLiteAccountStore',
    'build_provider_config',
    # 타입
    'Account',
    'ProviderConfig',
    'ProviderId',
    'TokenSet',
    # 예외
    'OAuthError',
    'UnknownProviderError',
    'ScopePolicyError',
    'TokenExchangeError',
    'TokenRefreshError',
    'AccountNotFoundError',
]

__version__ = '1.0.0'
