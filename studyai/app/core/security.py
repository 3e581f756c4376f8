"""Bearer token verification against the identity provider.

Two verifiers are available: tokens signed with a shared HS256 secret are
checked locally with PyJWT, otherwise the token is presented to the
identity provider's user endpoint. Either way the result is the subject
identifier used as the account key.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
import jwt

from studyai.app.core.config import settings
from studyai.app.core.logging import get_logger
from studyai.app.exceptions import AuthenticationError, InternalError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None


class IdentityVerifier(ABC):
    @abstractmethod
    async def verify(self, token: str) -> Identity:
        """Return the identity behind a bearer token.

        Raises:
            AuthenticationError: If the token is rejected or has no subject
        """


class JWTIdentityVerifier(IdentityVerifier):
    """Verify HS256 access tokens locally."""

    def __init__(self, secret: str, audience: Optional[str] = None):
        self.secret = secret
        self.audience = audience

    async def verify(self, token: str) -> Identity:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"verify_aud": bool(self.audience)},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Session expired. Please sign in again.")
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected access token: {e}")
            raise AuthenticationError("Unauthorized")

        subject = claims.get("sub")
        if not subject:
            raise AuthenticationError("Unauthorized")
        return Identity(user_id=str(subject), email=claims.get("email"))


class RemoteIdentityVerifier(IdentityVerifier):
    """Ask the identity provider who owns the token (GET {auth_url}/user)."""

    def __init__(
        self,
        auth_url: str,
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        self.auth_url = auth_url.rstrip("/")
        self.api_key = api_key
        self._http_client = http_client
        self.timeout = timeout

    async def verify(self, token: str) -> Identity:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        try:
            resp = await client.get(f"{self.auth_url}/user", headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise AuthenticationError("Unauthorized")
        finally:
            if self._http_client is None:
                await client.aclose()

        if resp.status_code != 200:
            logger.info(f"Identity provider rejected token: {resp.status_code}")
            raise AuthenticationError("Unauthorized")

        try:
            data = resp.json()
        except ValueError:
            raise AuthenticationError("Unauthorized")

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise AuthenticationError("Unauthorized")
        return Identity(user_id=str(user_id), email=data.get("email"))


def create_identity_verifier(http_client: Optional[httpx.AsyncClient] = None) -> IdentityVerifier:
    """Pick the verifier from settings.

    Raises:
        InternalError: If neither a JWT secret nor an identity provider URL is set
    """
    if settings.auth_jwt_secret:
        return JWTIdentityVerifier(settings.auth_jwt_secret, settings.auth_jwt_audience or None)
    if settings.auth_url:
        return RemoteIdentityVerifier(
            settings.auth_url,
            settings.auth_api_key,
            http_client=http_client,
            timeout=settings.auth_timeout,
        )
    logger.error("Neither AUTH_JWT_SECRET nor AUTH_URL is configured")
    raise InternalError("Authentication is not configured")
