import secrets

from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.security import HTTPBearer


bearer_scheme = HTTPBearer(auto_error=False)


def extract_bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    """Extract and validate a Bearer token from authorization credentials.

    Raises:
        HTTPException: If credentials are missing, malformed, or empty.
    """

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authorization Bearer token is required",
        )

    if credentials.scheme.lower() != "bearer" or not credentials.credentials.strip():
        raise HTTPException(
            status_code=401,
            detail="Authorization Bearer token is required",
        )

    return credentials.credentials.strip()


def require_admin_token(
    credentials: HTTPAuthorizationCredentials | None,
    admin_token: str | None,
) -> None:
    """Allow the request only when it carries the configured admin token.

    Raises:
        HTTPException: 503 when no admin token is configured, 401 when the
            presented token is missing or does not match.
    """

    if not admin_token:
        raise HTTPException(status_code=503, detail="Pipeline runs are disabled")

    token = extract_bearer_token(credentials)
    if not secrets.compare_digest(token.encode(), admin_token.encode()):
        raise HTTPException(status_code=401, detail="Admin token is invalid")
