"""
Cache key and entry models for the token cache.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.errors import MalformedCacheRecordError


CACHE_KEY_PREFIX = "@@tokencache@@"
CACHE_KEY_DELIMITER = "::"


@dataclass(frozen=True)
class CacheKey:
    """Composite identity of a cached credential.

    Serialized as ``prefix::client_id::audience::scope`` where scope is the
    space-joined list of scope tokens in the order given.
    """
    client_id: Optional[str]
    audience: Optional[str] = None
    scope: Optional[str] = None
    prefix: Optional[str] = CACHE_KEY_PREFIX

    def to_key(self) -> str:
        """Serialize the key to its wire string."""
        return CACHE_KEY_DELIMITER.join(
            "" if part is None else part
            for part in (self.prefix, self.client_id, self.audience, self.scope)
        )

    @classmethod
    def from_key(cls, key: str) -> "CacheKey":
        """Parse a wire string.

        Absent prefix, client and audience segments become ``None`` so they
        never compare equal to a real value. An absent scope becomes ``""``.
        """
        parts: List[Optional[str]] = list(key.split(CACHE_KEY_DELIMITER))
        parts += [None] * (4 - len(parts))
        prefix, client_id, audience, scope = parts[:4]
        return cls(
            client_id=client_id,
            audience=audience,
            scope=scope or "",
            prefix=prefix
        )

    def scopes(self) -> List[str]:
        """Scope tokens in order."""
        return (self.scope or "").split(" ")


class TokenClaims(BaseModel):
    """Decoded token claims; only ``exp`` is required."""
    model_config = ConfigDict(extra="allow")

    exp: int


class DecodedToken(BaseModel):
    """Decoded token structure attached to a cache entry."""
    header: Dict[str, Any] = Field(default_factory=dict)
    claims: TokenClaims
    user: Dict[str, Any] = Field(default_factory=dict)


class CacheEntry(BaseModel):
    """Full credential bundle as produced by the token issuer."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    client_id: str
    audience: str
    scope: str
    expires_in: int
    decoded_token: DecodedToken = Field(..., alias="decodedToken")
    access_token: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None

    def cache_key(self) -> CacheKey:
        """Canonical cache key for this entry."""
        return CacheKey(
            client_id=self.client_id,
            audience=self.audience,
            scope=self.scope
        )


class RefreshOnlyEntry(BaseModel):
    """Expired credential narrowed to its refresh token."""
    model_config = ConfigDict(extra="forbid")

    refresh_token: str


# Refresh-only is tried first: a full credential never validates against it.
CredentialBody = Union[RefreshOnlyEntry, CacheEntry]


class WrappedCacheEntry(BaseModel):
    """Persisted envelope of a credential body and its absolute expiry."""
    model_config = ConfigDict(populate_by_name=True)

    body: CredentialBody = Field(..., union_mode="left_to_right")
    expires_at: int = Field(..., alias="expiresAt")

    def to_record(self) -> Dict[str, Any]:
        """Plain dict persisted by storage backends."""
        return self.model_dump(by_alias=True, exclude_unset=True)

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "WrappedCacheEntry":
        """Validate a stored record."""
        try:
            return cls.model_validate(record)
        except ValidationError as e:
            raise MalformedCacheRecordError(key, details={"errors": e.errors()}) from e

    def narrowed(self) -> "WrappedCacheEntry":
        """Copy keeping only the refresh token of the body."""
        return WrappedCacheEntry(
            body=RefreshOnlyEntry(refresh_token=self.body.refresh_token),
            expires_at=self.expires_at
        )


class KeyManifestEntry(BaseModel):
    """Set of cache keys written by one manager."""
    keys: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "KeyManifestEntry":
        """Validate a stored manifest record."""
        try:
            return cls.model_validate(record)
        except ValidationError as e:
            raise MalformedCacheRecordError(key, details={"errors": e.errors()}) from e
