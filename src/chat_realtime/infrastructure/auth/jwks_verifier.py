from __future__ import annotations

import jwt
from jwt import PyJWKClient

from chat_realtime.application.dto.principal import Principal
from chat_realtime.infrastructure.auth.hs256_verifier import principal_from_claims


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwk_client = PyJWKClient(jwks_url, cache_keys=True)

    async def verify(self, token: str) -> Principal:
        signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        payload = jwt.decode(token, signing_key.key, algorithms=["RS256", "ES256"])
        return principal_from_claims(payload)
