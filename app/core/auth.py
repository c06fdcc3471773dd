# core/auth.py
"""
Service-to-service JWT authentication for the trigger endpoints.
"""

from datetime import timedelta
from typing import Optional

import jwt
from fastapi import HTTPException, Request, status

from core.config import settings
from core.logger import logger


class AuthenticatedPrincipal:
    """
    Authenticated caller extracted from the JWT.

    Proves the request came from a trusted scheduler or backend,
    not which end user triggered it.
    """

    def __init__(self, issuer: str, audience: str, subject: Optional[str], request_id: str):
        self.issuer = issuer
        self.audience = audience
        self.subject = subject
        self.request_id = request_id


def _unauthorized(detail: str, request_id: str, code: int = status.HTTP_401_UNAUTHORIZED) -> HTTPException:
    return HTTPException(status_code=code, detail=detail, headers={"x-request-id": request_id})


async def verify_jwt_token(request: Request) -> AuthenticatedPrincipal:
    """
    Verify the bearer token on a trigger request.

    Raises:
        HTTPException: If the token is missing, malformed, expired or not ours,
            or when no signing secret is configured
    """
    request_id = request.headers.get("x-request-id", "unknown")
    if not settings.JWT_SECRET_KEY:
        logger.error("JWT_SECRET_KEY is not configured; rejecting request", extra={"request_id": request_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured",
            headers={"x-request-id": request_id}
        )

    authorization = request.headers.get("Authorization")
    if not authorization:
        raise _unauthorized("Not authenticated", request_id, status.HTTP_403_FORBIDDEN)

    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid authentication scheme", request_id)

    token = authorization.split(" ", 1)[1]

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            leeway=timedelta(seconds=settings.JWT_LEEWAY_SECONDS)
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token", extra={"request_id": request_id, "auth_result": "expired"})
        raise _unauthorized("Token has expired", request_id)
    except jwt.InvalidIssuerError:
        logger.warning("Invalid issuer", extra={"request_id": request_id, "auth_result": "invalid_issuer"})
        raise _unauthorized("Invalid token issuer", request_id)
    except jwt.InvalidAudienceError:
        logger.warning("Invalid audience", extra={"request_id": request_id, "auth_result": "invalid_audience"})
        raise _unauthorized("Invalid token audience", request_id)
    except jwt.InvalidTokenError as e:
        logger.warning(
            "Invalid token",
            extra={"request_id": request_id, "auth_result": "invalid", "reason": str(e)}
        )
        raise _unauthorized("Invalid token", request_id)

    principal = AuthenticatedPrincipal(
        issuer=payload["iss"],
        audience=payload["aud"],
        subject=payload.get("sub"),
        request_id=request_id
    )

    logger.info(
        "Authentication successful",
        extra={"request_id": request_id, "auth_result": "success", "sub": principal.subject}
    )
    return principal
