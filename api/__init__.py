"""HTTP adapter for the reconciliation core."""

__version__ = "0.1.0"
