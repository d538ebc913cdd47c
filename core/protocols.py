"""
Core Protocols - 모듈 간 의존성 추상화를 위한 Protocol 정의

현재 정의:
    - TokenProviderProtocol: 메일 프로토콜 클라이언트(IMAP/SMTP 등)가
      mail_oauth.AuthManager를 직접 알지 않아도 되게 함

사용 예시:
    # 테스트용 Mock 주입
    mock_provider = MockTokenProvider()
    client = ImapClient(token_provider=mock_provider)
"""

from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class TokenProviderProtocol(Protocol):
    """
    토큰 제공자 프로토콜 - AuthManager 추상화

    계정별 유효 액세스 토큰 제공과 상태 조회를 담당하는 인터페이스.
    mail_oauth.AuthManager가 이 Protocol을 구현합니다.
    """

    async def get_valid_access_token(self, account_id: str) -> str:
        """
        유효한 액세스 토큰 반환 (필요시 자동 갱신)

        Args:
            account_id: 계정 id

        Returns:
            유효한 액세스 토큰
        """
        ...

    def get_token_status(self, account_id: str) -> Dict[str, Any]:
        """
        계정 토큰 상태 조회 (토큰 값 미포함)

        Args:
            account_id: 계정 id

        Returns:
            토큰 상태 딕셔너리
        """
        ...

    async def close(self) -> None:
        """리소스 정리"""
        ...
