"""
메일 OAuth 타입 정의
Pydantic 모델을 사용하여 런타임 유효성 검증과 문서화 제공
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .scope_policy import assert_local_only_scopes


class ProviderId(str, Enum):
    """지원 프로바이더"""
    GMAIL = "gmail"                   # 클라우드 프로바이더 (Gmail API)
    OUTLOOK_LOCAL = "outlook-local"   # 로컬 전용 (IMAP/POP/SMTP)


class ProviderConfig(BaseModel):
    """프로바이더별 OAuth2 설정 (시작 시 1회 로드, 불변)"""

    model_config = ConfigDict(frozen=True)

    provider_id: ProviderId
    client_id: str = ""
    client_secret: str = Field("", repr=False)
    redirect_uri: str
    scopes: Tuple[str, ...] = Field(..., min_length=1)
    authorization_endpoint: str
    token_endpoint: str

    @model_validator(mode="after")
    def _enforce_scope_policy(self) -> "ProviderConfig":
        if self.provider_id == ProviderId.OUTLOOK_LOCAL:
            assert_local_only_scopes(self.scopes)
        return self

    @property
    def scope_string(self) -> str:
        """공백 구분 스코프 문자열"""
        return " ".join(self.scopes)


class TokenSet(BaseModel):
    """토큰 엔드포인트 응답으로 만든 토큰 묶음"""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    issued_at: datetime
    expires_at: datetime
    token_type: str = "Bearer"
    granted_scopes: Tuple[str, ...] = ()


class Account(BaseModel):
    """등록된 메일 계정 (AuthManager 내부 소유)"""

    id: str
    email_address: str
    provider_id: ProviderId
    tokens: TokenSet
    created_at: datetime
    last_refreshed_at: datetime
    active: bool = True
    # 프로바이더가 refresh token을 거부한 경우 True
    reauth_required: bool = False
