from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional, Sequence

import anyio
import jwt
from fastapi import Header, Request

from workout_timer.domain.errors import Unauthorized

logger = logging.getLogger(__name__)

API_KEY = os.getenv("API_KEY")
API_KEYS_FILE = os.getenv("API_KEYS_FILE", "api_keys.txt")
AUTH_JWKS_URL = os.getenv("AUTH_JWKS_URL")
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
AUTH_ISSUER = os.getenv("AUTH_ISSUER")
AUTH_AUDIENCE = os.getenv("AUTH_AUDIENCE")


def load_api_keys(path: str, inline_key: str | None) -> set[str]:
    entries: set[str] = set()

    if inline_key:
        entries.add(inline_key.strip())

    file_path = Path(path)
    if file_path.exists():
        raw = file_path.read_text(encoding="utf-8")
        for line in raw.splitlines():
            for key in line.split(","):
                cleaned = key.strip()
                if cleaned:
                    entries.add(cleaned)

    return entries


class TokenVerifier:
    """Resolves request credentials to the owning user id.

    API keys are sent as ``<key>:<user_id>``. Bearer tokens are JWTs whose
    ``sub`` claim is the user id, checked either against a JWKS endpoint
    (RS256) or a shared secret (HS256).
    """

    def __init__(
        self,
        api_keys: set[str],
        jwks_url: str | None = None,
        secret: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
    ):
        self.api_keys = api_keys
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None

    def verify_api_key(self, value: str) -> str | None:
        key, _, user_id = value.partition(":")
        if not self.api_keys or key not in self.api_keys or not user_id:
            return None
        return user_id

    def _signing_key(self, token: str) -> tuple[Any, Sequence[str]] | None:
        if self._jwks_client is not None:
            return self._jwks_client.get_signing_key_from_jwt(token).key, ["RS256"]
        if self.secret:
            return self.secret, ["HS256"]
        return None

    def _verify(self, token: str) -> str | None:
        try:
            signing = self._signing_key(token)
            if signing is None:
                logger.warning("Rejected bearer token: JWT validation not configured")
                return None
            key, algorithms = signing
            claims: dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=list(algorithms),
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.PyJWTError as exc:
            logger.warning("Rejected bearer token: %s", exc)
            return None

        subject = claims.get("sub")
        if not subject:
            return None
        return str(subject)

    async def verify_token(self, token: str) -> str | None:
        return await anyio.to_thread.run_sync(self._verify, token)


def build_token_verifier() -> TokenVerifier:
    return TokenVerifier(
        load_api_keys(API_KEYS_FILE, API_KEY),
        jwks_url=AUTH_JWKS_URL,
        secret=AUTH_JWT_SECRET,
        issuer=AUTH_ISSUER,
        audience=AUTH_AUDIENCE,
    )


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    verifier: TokenVerifier = request.app.state.token_verifier

    if x_api_key:
        user_id = verifier.verify_api_key(x_api_key)
        if user_id:
            return user_id
        logger.warning("Rejected API key")
        raise Unauthorized("Invalid API key")

    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise Unauthorized("Invalid authorization header format")
        user_id = await verifier.verify_token(token.strip())
        if user_id:
            return user_id
        raise Unauthorized("Invalid token")

    raise Unauthorized("Missing authentication. Provide Authorization header or X-API-Key.")
