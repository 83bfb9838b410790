"""
Token decoding for cache entries.

Tokens are decoded without signature verification: they were just issued by
the token endpoint and validation belongs to the issuing side. Only the
claims needed for caching (chiefly ``exp``) are used here.
"""

from typing import Dict, Any, Optional

import jwt
from pydantic import ValidationError

from shared.logging import get_logger
from shared.errors import TokenDecodeError
from ..cache.models import CacheEntry, DecodedToken, TokenClaims


logger = get_logger("token_cache.decoder")

# Registered and protocol claims that do not describe the user.
NON_USER_CLAIMS = frozenset({
    "iss", "aud", "exp", "nbf", "iat", "jti", "azp", "nonce", "auth_time",
    "at_hash", "c_hash", "acr", "amr", "sub_jwk", "cnf", "sid", "typ", "scope",
})


def decode_token(encoded: str) -> DecodedToken:
    """Decode a JWT into header, claims and user profile."""
    try:
        header = jwt.get_unverified_header(encoded)
        claims = jwt.decode(
            encoded,
            options={"verify_signature": False, "verify_exp": False, "verify_aud": False}
        )
    except jwt.PyJWTError as e:
        raise TokenDecodeError(f"Invalid token: {e}") from e

    if "exp" not in claims:
        raise TokenDecodeError("Token has no exp claim")

    try:
        token_claims = TokenClaims.model_validate(claims)
    except ValidationError as e:
        raise TokenDecodeError("Token claims are malformed", details={"errors": e.errors()}) from e

    user = {name: value for name, value in claims.items() if name not in NON_USER_CLAIMS}
    return DecodedToken(header=header, claims=token_claims, user=user)


def build_cache_entry(
    response: Dict[str, Any],
    *,
    client_id: str,
    audience: str,
    scope: Optional[str] = None,
) -> CacheEntry:
    """Build a cache entry from a token endpoint response.

    The decoded token comes from ``id_token`` when present, else from
    ``access_token``. ``scope`` defaults to the scope granted in the
    response.
    """
    encoded = response.get("id_token") or response.get("access_token")
    if not encoded:
        raise TokenDecodeError("Token response carries no token")

    if "expires_in" not in response:
        raise TokenDecodeError("Token response has no expires_in")

    decoded_token = decode_token(encoded)
    entry = CacheEntry(
        client_id=client_id,
        audience=audience,
        scope=scope if scope is not None else response.get("scope", ""),
        expires_in=int(response["expires_in"]),
        decoded_token=decoded_token,
        access_token=response.get("access_token"),
        id_token=response.get("id_token"),
        refresh_token=response.get("refresh_token"),
        token_type=response.get("token_type"),
    )

    logger.debug(
        "Built cache entry",
        client_id=client_id,
        audience=audience,
        scope=entry.scope,
        exp=decoded_token.claims.exp,
    )
    return entry
