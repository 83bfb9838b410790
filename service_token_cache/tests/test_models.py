"""
Unit tests for cache keys and wrapped entries.
"""

import pytest
import time

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_token_cache.app.cache.models import (
    CACHE_KEY_PREFIX,
    CacheEntry,
    CacheKey,
    KeyManifestEntry,
    RefreshOnlyEntry,
    WrappedCacheEntry,
)
from shared.errors import MalformedCacheRecordError


def make_entry(**overrides):
    data = {
        "client_id": "c1",
        "audience": "aud1",
        "scope": "read write",
        "expires_in": 3600,
        "access_token": "at-1",
        "refresh_token": "r1",
        "decodedToken": {
            "header": {"alg": "RS256"},
            "claims": {"exp": int(time.time()) + 3600, "sub": "user1"},
            "user": {"sub": "user1"}
        }
    }
    data.update(overrides)
    return CacheEntry.model_validate(data)


class TestCacheKey:
    """Test cases for CacheKey."""

    def test_to_key_format(self):
        """Test key serialization order and delimiter."""
        key = CacheKey(client_id="c1", audience="aud1", scope="read write")

        assert key.to_key() == f"{CACHE_KEY_PREFIX}::c1::aud1::read write"

    def test_round_trip(self):
        """Test parse(serialize(key)) is lossless."""
        key = CacheKey(client_id="c1", audience="https://api.example.com", scope="openid profile email")

        assert CacheKey.from_key(key.to_key()) == key
        assert CacheKey.from_key(key.to_key()).to_key() == key.to_key()

    def test_round_trip_custom_prefix(self):
        """Test round trip keeps a non-default prefix."""
        key = CacheKey(client_id="c1", audience="aud1", scope="read", prefix="@@other@@")

        assert CacheKey.from_key(key.to_key()) == key

    def test_from_key_missing_scope(self):
        """Test parsing tolerates a missing scope segment."""
        key = CacheKey.from_key(f"{CACHE_KEY_PREFIX}::c1::aud1")

        assert key.client_id == "c1"
        assert key.audience == "aud1"
        assert key.scope == ""

    def test_from_key_missing_fields(self):
        """Test absent fields parse as None."""
        key = CacheKey.from_key(f"{CACHE_KEY_PREFIX}::c1")

        assert key.prefix == CACHE_KEY_PREFIX
        assert key.client_id == "c1"
        assert key.audience is None
        assert key.scope == ""

    def test_scopes_preserve_order(self):
        """Test scope tokens keep their given order."""
        key = CacheKey(client_id="c1", audience="aud1", scope="write read admin")

        assert key.scopes() == ["write", "read", "admin"]


class TestWrappedCacheEntry:
    """Test cases for WrappedCacheEntry."""

    def test_record_shape(self):
        """Test persisted record uses body/expiresAt."""
        entry = make_entry()
        wrapped = WrappedCacheEntry(body=entry, expires_at=1700000000)

        record = wrapped.to_record()

        assert set(record.keys()) == {"body", "expiresAt"}
        assert record["expiresAt"] == 1700000000
        assert record["body"]["client_id"] == "c1"
        assert "decodedToken" in record["body"]

    def test_from_record_full_credential(self):
        """Test a full body parses as CacheEntry."""
        entry = make_entry()
        record = WrappedCacheEntry(body=entry, expires_at=1700000000).to_record()

        wrapped = WrappedCacheEntry.from_record("key", record)

        assert isinstance(wrapped.body, CacheEntry)
        assert wrapped.body.access_token == "at-1"
        assert wrapped.body.decoded_token.claims.exp == entry.decoded_token.claims.exp

    def test_from_record_refresh_only(self):
        """Test a refresh-token-only body parses as RefreshOnlyEntry."""
        wrapped = WrappedCacheEntry.from_record(
            "key",
            {"body": {"refresh_token": "r1"}, "expiresAt": 1700000000}
        )

        assert isinstance(wrapped.body, RefreshOnlyEntry)
        assert wrapped.body.refresh_token == "r1"

    def test_narrowed(self):
        """Test narrowing keeps only the refresh token and expiry."""
        wrapped = WrappedCacheEntry(body=make_entry(), expires_at=1700000000)

        narrowed = wrapped.narrowed()

        assert narrowed.to_record() == {"body": {"refresh_token": "r1"}, "expiresAt": 1700000000}

    def test_record_keeps_null_issuer_fields(self):
        """Test null claims and extra body fields survive persistence."""
        entry = make_entry(
            session_state=None,
            decodedToken={
                "header": {"alg": "RS256"},
                "claims": {"exp": 1700003600, "nickname": None},
                "user": {"nickname": None}
            }
        )
        record = WrappedCacheEntry(body=entry, expires_at=1700000000).to_record()

        assert record["body"]["session_state"] is None
        assert record["body"]["decodedToken"]["claims"] == {"exp": 1700003600, "nickname": None}
        assert "id_token" not in record["body"]
        assert WrappedCacheEntry.from_record("key", record).to_record() == record

    def test_from_record_malformed(self):
        """Test malformed records raise MalformedCacheRecordError."""
        with pytest.raises(MalformedCacheRecordError) as exc_info:
            WrappedCacheEntry.from_record("bad-key", {"body": {"nope": True}})

        assert exc_info.value.key == "bad-key"
        assert exc_info.value.code == "MALFORMED_CACHE_RECORD"

    def test_cache_key_from_entry(self):
        """Test entry derives its canonical key."""
        entry = make_entry()

        assert entry.cache_key() == CacheKey(client_id="c1", audience="aud1", scope="read write")


class TestKeyManifestEntry:
    """Test cases for KeyManifestEntry."""

    def test_from_record(self):
        """Test manifest record parsing."""
        entry = KeyManifestEntry.from_record("manifest", {"keys": ["a", "b"]})

        assert entry.keys == ["a", "b"]

    def test_from_record_malformed(self):
        """Test malformed manifest record."""
        with pytest.raises(MalformedCacheRecordError):
            KeyManifestEntry.from_record("manifest", {"keys": "not-a-list"})
