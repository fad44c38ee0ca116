from __future__ import annotations

import jwt

from chat_realtime.application.dto.principal import Principal


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        return principal_from_claims(payload)


def principal_from_claims(payload: dict) -> Principal:
    try:
        identity = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError("Token subject must be a numeric user id") from exc
    return Principal(identity=identity, roles=list(payload.get("roles", [])))
