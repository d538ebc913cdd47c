"""
Provider configuration management module.
프로바이더별 OAuth2 앱 설정을 관리합니다.

스코프 목록과 엔드포인트는 코드에 고정되어 있으며 환경변수로 바꿀 수 없습니다.
환경변수에서는 client_id / client_secret / redirect_uri 만 읽습니다.
"""

import logging
import os
from typing import Dict, Iterable, List, Optional, Union

from dotenv import load_dotenv

from .errors import UnknownProviderError
from .oauth_types import ProviderConfig, ProviderId
from .scope_policy import LOCAL_PROTOCOL_SCOPES

logger = logging.getLogger(__name__)


GMAIL_SCOPES = (
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.modify",
)

# LOCAL ACCESS ONLY - Graph API 스코프 없음
OUTLOOK_LOCAL_SCOPES = LOCAL_PROTOCOL_SCOPES

GMAIL_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GMAIL_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"

MICROSOFT_AUTHORITY = "https://login.microsoftonline.com/common"
OUTLOOK_AUTH_ENDPOINT = f"{MICROSOFT_AUTHORITY}/oauth2/v2.0/authorize"
OUTLOOK_TOKEN_ENDPOINT = f"{MICROSOFT_AUTHORITY}/oauth2/v2.0/token"

# 프로바이더별 환경변수 접두어와 기본 redirect URI
_ENV_SETTINGS = {
    ProviderId.GMAIL: ("GMAIL", "http://localhost:3000/auth/gmail/callback"),
    ProviderId.OUTLOOK_LOCAL: ("OUTLOOK_LOCAL", "http://localhost:3000/auth/outlook/callback"),
}


def build_provider_config(
    provider_id: ProviderId,
    client_id: str,
    client_secret: str,
    redirect_uri: Optional[str] = None
) -> ProviderConfig:
    """
    고정 스코프/엔드포인트로 ProviderConfig 생성

    Args:
        provider_id: 프로바이더
        client_id: OAuth 앱 client id
        client_secret: OAuth 앱 client secret
        redirect_uri: 콜백 URI (None이면 기본값)

    Returns:
        ProviderConfig
    """
    default_redirect = _ENV_SETTINGS[provider_id][1]

    if provider_id == ProviderId.GMAIL:
        scopes = GMAIL_SCOPES
        auth_endpoint, token_endpoint = GMAIL_AUTH_ENDPOINT, GMAIL_TOKEN_ENDPOINT
    else:
        scopes = OUTLOOK_LOCAL_SCOPES
        auth_endpoint, token_endpoint = OUTLOOK_AUTH_ENDPOINT, OUTLOOK_TOKEN_ENDPOINT

    return ProviderConfig(
        provider_id=provider_id,
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri or default_redirect,
        scopes=scopes,
        authorization_endpoint=auth_endpoint,
        token_endpoint=token_endpoint
    )


def resolve_provider_id(provider_id: Union[ProviderId, str]) -> ProviderId:
    """문자열 provider id를 ProviderId로 변환 (없으면 UnknownProviderError)"""
    if isinstance(provider_id, ProviderId):
        return provider_id
    try:
        return ProviderId(provider_id)
    except ValueError:
        raise UnknownProviderError(provider_id) from None


class ProviderRegistry:
    """프로바이더 설정 레지스트리 - 생성 후 읽기 전용"""

    def __init__(self, configs: Iterable[ProviderConfig]):
        """
        레지스트리 초기화

        Args:
            configs: 등록할 ProviderConfig 목록 (provider_id 중복 불가)
        """
        registry: Dict[ProviderId, ProviderConfig] = {}
        for config in configs:
            if config.provider_id in registry:
                raise ValueError(f"Duplicate provider config: {config.provider_id.value}")
            registry[config.provider_id] = config
        self._configs = registry

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ProviderRegistry":
        """
        환경변수(.env 포함)에서 client 자격 증명을 읽어 레지스트리 생성

        Args:
            env_file: .env 파일 경로 (None이면 기본 탐색)

        Returns:
            ProviderRegistry
        """
        load_dotenv(env_file)

        configs = []
        for provider_id, (prefix, _) in _ENV_SETTINGS.items():
            client_id = os.getenv(f"{prefix}_CLIENT_ID", "")
            client_secret = os.getenv(f"{prefix}_CLIENT_SECRET", "")
            redirect_uri = os.getenv(f"{prefix}_REDIRECT_URI")

            if client_id and client_secret:
                logger.info(f"✅ {provider_id.value} config loaded from environment: client_id={client_id[:8]}...")
            else:
                logger.warning(f"⚠️ {provider_id.value} client credentials not found in environment variables")

            configs.append(build_provider_config(provider_id, client_id, client_secret, redirect_uri))

        return cls(configs)

    def get_config(self, provider_id: Union[ProviderId, str]) -> ProviderConfig:
        """
        프로바이더 설정 조회

        Raises:
            UnknownProviderError: 등록되지 않은 프로바이더
        """
        resolved = resolve_provider_id(provider_id)
        config = self._configs.get(resolved)
        if config is None:
            raise UnknownProviderError(provider_id)
        return config

    def providers(self) -> List[ProviderId]:
        """등록된 프로바이더 목록"""
        return list(self._configs)

    def __contains__(self, provider_id) -> bool:
        try:
            self.get_config(provider_id)
        except UnknownProviderError:
            return False
        return True
