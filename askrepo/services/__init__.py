"""Service layer for indexing, querying and staleness checks."""
