"""flagstore: feature flag resolution and storage."""

__version__ = "0.1.0"
