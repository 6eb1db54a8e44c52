"""Storage drivers for resolved feature values."""
