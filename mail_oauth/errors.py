"""
OAuth 예외 정의
메일 프로바이더 인증/토큰 처리 중 발생하는 오류 타입
"""

from typing import Optional


class OAuthError(Exception):
    """메일 OAuth 모듈 기본 예외"""
    pass


class UnknownProviderError(OAuthError):
    """등록되지 않은 프로바이더"""

    def __init__(self, provider_id):
        self.provider_id = provider_id
        super().__init__(f"Unsupported provider: {provider_id}")


class ScopePolicyError(OAuthError):
    """로컬 전용 프로바이더에 허용되지 않은 스코프 구성"""
    pass


class AccountNotFoundError(OAuthError):
    """존재하지 않거나 비활성화된 계정"""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found or inactive: {account_id}")


class ProviderHTTPError(OAuthError):
    """
    토큰 엔드포인트 오류 공통 베이스

    status/body는 진단용으로 보존합니다. 메시지에 토큰이나 client secret은
    절대 포함하지 않습니다.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        self.status = status
        self.body = body
        detail = f" (status={status})" if status is not None else ""
        super().__init__(f"{message}{detail}")


class TokenExchangeError(ProviderHTTPError):
    """Authorization code 교환 실패 - 사용자가 동의 절차를 다시 진행해야 함"""
    pass


class TokenRefreshError(ProviderHTTPError):
    """
    토큰 갱신 실패

    reauth_required=True 이면 프로바이더가 refresh token을 명시적으로 거부한 것
    (재인증 필요), False 이면 네트워크/일시적 오류로 호출자가 재시도할 수 있음.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        reauth_required: bool = False
    ):
        self.reauth_required = reauth_required
        super().__init__(message, status, body)
