"""
Access-token verification for tokens issued by the identity service.

The engine does not mint tokens; it only decodes bearer JWTs signed with
SECRET_KEY and extracts the caller's identity.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import jwt

from core.config import settings
from core.exceptions import TokenExpiredException, UnauthorizedException


@dataclass(frozen=True)
class AuthenticatedUser:
    id: int
    email: Optional[str] = None


class TokenService:
    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret_key = secret_key or settings.SECRET_KEY
        self._algorithm = algorithm or settings.ALGORITHM

    def verify_access_token(self, token: str) -> AuthenticatedUser:
        """Decode an access JWT.

        - Expired token: raise TokenExpiredException
        - Invalid signature, wrong type or missing subject: raise UnauthorizedException
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException()
        except jwt.InvalidTokenError:
            raise UnauthorizedException("Invalid authentication credentials")

        token_type = payload.get("type")
        if token_type is not None and token_type != "access":
            raise UnauthorizedException("Invalid token type")

        subject = payload.get("sub")
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            raise UnauthorizedException("Token is missing a valid subject")
        return AuthenticatedUser(id=user_id, email=payload.get("email"))
