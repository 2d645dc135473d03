"""Service layer: feeds, ingestion helpers and admin operations."""
