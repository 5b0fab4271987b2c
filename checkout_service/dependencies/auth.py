from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from checkout_service.core.errors import AuthError
from checkout_service.core.metrics import AUTH_TOKEN_VALIDATION_TOTAL

NOT_LOGGED_IN_MSG = "You are not logged in. Please log in to get access."
INVALID_TOKEN_MSG = "Invalid token. Please log in again."

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    user_id: UUID
    role: str = "customer"


class IdentityGate:
    """Verifies bearer tokens issued by the auth service."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", service_name: str = "checkout"):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._service_name = service_name

    def _count(self, result: str) -> None:
        AUTH_TOKEN_VALIDATION_TOTAL.labels(service=self._service_name, result=result).inc()

    def verify(self, token: str) -> Identity:
        self._count("attempt")
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Access token expired during validation")
            self._count("expired")
            raise AuthError(INVALID_TOKEN_MSG)
        except jwt.InvalidTokenError:
            logger.warning("Invalid access token during validation")
            self._count("invalid")
            raise AuthError(INVALID_TOKEN_MSG)

        raw_id = payload.get("id") or payload.get("sub")
        try:
            user_id = UUID(str(raw_id))
        except ValueError:
            logger.warning("Access token subject '{subject}' is not a user id", subject=raw_id)
            self._count("invalid")
            raise AuthError(INVALID_TOKEN_MSG)

        identity = Identity(user_id=user_id, role=str(payload.get("role") or "customer"))
        logger.info(
            "Access token validated for user_id='{user_id}', role='{role}'",
            user_id=str(identity.user_id),
            role=identity.role,
        )
        self._count("success")
        return identity


def get_identity_gate(request: Request) -> IdentityGate:
    return request.app.state.identity_gate


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    gate: Annotated[IdentityGate, Depends(get_identity_gate)],
) -> Identity:
    if credentials is None or not credentials.credentials:
        logger.warning("Request without bearer token")
        raise AuthError(NOT_LOGGED_IN_MSG)
    return gate.verify(credentials.credentials)


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
