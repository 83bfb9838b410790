"""
Token cache service package.

Caches issued credential bundles in front of a pluggable key/value store and
answers (client, audience, scope) lookups against it.

Structure:
- app.cache: Cache keys and entries, storage backends, key manifest and the
  cache manager.
- app.tokens: Token decoding and cache entry construction.
- app.factory: Builds a configured cache manager.
"""
