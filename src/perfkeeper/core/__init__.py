"""Core domain: record models, key codec, scanning and aggregation."""
