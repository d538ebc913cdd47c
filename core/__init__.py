"""
Core Module - TokenProviderProtocol 정의

메일 클라이언트가 mail_oauth.AuthManager를 직접 의존하지 않도록 추상화.
"""

from .protocols import TokenProviderProtocol

__all__ = ['TokenProviderProtocol']
