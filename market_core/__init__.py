"""Core (UI-agnostic) market intelligence logic.

This package contains:
- dataset loading (JSON payload -> pandas)
- geography and segment taxonomy resolution
- filter normalization and record filtering
- series preparation (JSON-serializable chart payloads)
"""
