"""
Scope Policy
로컬 전용(outlook-local) 프로바이더의 스코프 제한 규칙

outlook-local 계정은 IMAP/POP/SMTP 프로토콜 수준 접근만 허용되며
Microsoft Graph 등 클라우드 관리 API 스코프는 요청할 수 없습니다.
"""

from typing import Iterable, List

from .errors import ScopePolicyError

OUTLOOK_RESOURCE = "https://outlook.office365.com/"

# 프로토콜 수준 스코프 (허용 목록)
LOCAL_PROTOCOL_SCOPES = (
    f"{OUTLOOK_RESOURCE}IMAP.AccessAsUser.All",
    f"{OUTLOOK_RESOURCE}POP.AccessAsUser.All",
    f"{OUTLOOK_RESOURCE}SMTP.Send",
)

# refresh token 발급용 OIDC 스코프는 API 권한이 아님
LOCAL_ALLOWED_SCOPES = LOCAL_PROTOCOL_SCOPES + ("offline_access",)

CLOUD_MANAGEMENT_RESOURCES = (
    "https://graph.microsoft.com/",
    "https://graph.windows.net/",
    "https://management.azure.com/",
)

# 리소스 접두어 없이 쓰이면 Graph로 해석되는 권한명
GRAPH_PERMISSION_PREFIXES = (
    "Mail.",
    "MailboxSettings.",
    "User.",
    "Directory.",
    "Files.",
    "Calendars.",
    "Contacts.",
)


def is_cloud_management_scope(scope: str) -> bool:
    """클라우드 관리 API 스코프 여부"""
    if scope.startswith(CLOUD_MANAGEMENT_RESOURCES):
        return True
    if scope.endswith("/.default") or scope == ".default":
        return True
    return scope.startswith(GRAPH_PERMISSION_PREFIXES)


def assert_local_only_scopes(scopes: Iterable[str]) -> None:
    """
    로컬 전용 스코프 목록 검증

    Args:
        scopes: 요청 스코프 목록

    Raises:
        ScopePolicyError: 허용 목록 밖의 스코프 또는 클라우드 관리 스코프 포함 시
    """
    violations: List[str] = [
        scope for scope in scopes
        if is_cloud_management_scope(scope) or scope not in LOCAL_ALLOWED_SCOPES
    ]
    if violations:
        raise ScopePolicyError(
            f"Local-only provider may request protocol-level scopes only, got: {', '.join(violations)}"
        )
