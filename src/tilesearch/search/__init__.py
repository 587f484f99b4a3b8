"""
Term/grid index package.

This package provides the sharded search core:
- terms: Token normalization, term ids and tile coordinates
- sharding: Deterministic shard routing
- models: Grid records, index patches and shard payload codecs
- shard_index: Cached TermIndex/GridIndex views over a shard store
- scorer: Frequency-weighted sub-field scoring
- writer: Patch building and merge
- coordinator: Query execution
"""
