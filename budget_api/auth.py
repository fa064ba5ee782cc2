import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from . import crud, models
from .config import get_settings
from .database import get_db

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Identity:
    user_id: str
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def email(self) -> Optional[str]:
        return self.claims.get("email")


class TokenVerifier:
    """
    Resolves a bearer token to an Identity. Any identity provider can be
    plugged in by implementing verify_token and overriding get_verifier.
    """

    def verify_token(self, token: str) -> Identity:
        raise NotImplementedError


class InvalidToken(Exception):
    pass


class JWTVerifier(TokenVerifier):
    """Verifies provider-signed JWTs against the provider's public key."""

    def __init__(
        self,
        public_key: str,
        algorithms: Optional[List[str]] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.public_key = public_key
        self.algorithms = algorithms or ["RS256"]
        self.issuer = issuer
        self.audience = audience

    def verify_token(self, token: str) -> Identity:
        try:
            claims = jwt.decode(
                token,
                self.public_key,
                algorithms=self.algorithms,
                issuer=self.issuer,
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc

        user_id = claims.get("sub")
        if not user_id:
            raise InvalidToken("Token has no subject")
        return Identity(user_id=str(user_id), claims=claims)


@lru_cache()
def get_verifier() -> TokenVerifier:
    settings = get_settings().require_server()
    return JWTVerifier(
        settings.auth_public_key,
        algorithms=settings.auth_algorithms,
        issuer=settings.auth_issuer,
        audience=settings.auth_audience,
    )


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_verifier),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized()
    try:
        return verifier.verify_token(credentials.credentials)
    except InvalidToken as exc:
        logger.debug("Rejected bearer token: %s", exc)
        raise _unauthorized("Invalid token")


def get_current_user(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> models.User:
    return crud.ensure_user(db, user_id=identity.user_id, email=identity.email)
