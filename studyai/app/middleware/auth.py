from fastapi import Request

from studyai.app.core.logging import get_logger
from studyai.app.core.security import Identity, IdentityVerifier, create_identity_verifier
from studyai.app.exceptions import AuthenticationError

logger = get_logger(__name__)

# Access tokens are JWTs; anything longer than this is not one of ours
MAX_TOKEN_LENGTH = 4096


def get_bearer_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: The incoming request

    Returns:
        The token string if present, None otherwise
    """
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.replace("Bearer ", "", 1).strip() or None


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """The verifier created during lifespan, or one built on demand."""
    verifier = getattr(request.app.state, "identity_verifier", None)
    if verifier is None:
        verifier = create_identity_verifier(getattr(request.app.state, "http_client", None))
        request.app.state.identity_verifier = verifier
    return verifier


async def require_identity(request: Request) -> Identity:
    """Authenticate the caller and return their identity.

    Raises:
        AuthenticationError: 401 if the token is missing, oversized, rejected,
            or carries no subject
    """
    token = get_bearer_token(request)
    if not token:
        raise AuthenticationError("Unauthorized")

    if len(token) > MAX_TOKEN_LENGTH:
        raise AuthenticationError("Unauthorized")

    identity = await get_identity_verifier(request).verify(token)
    request.state.user_id = identity.user_id
    return identity
