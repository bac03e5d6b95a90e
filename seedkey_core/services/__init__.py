"""
SeedKey Services
"""

from .auth_service import AuthService, TokenGenerator
from .token_service import TokenService

__all__ = ["AuthService", "TokenGenerator", "TokenService"]
