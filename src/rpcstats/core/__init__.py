"""Core domain: models, ports, ingestion queue and rollup."""
