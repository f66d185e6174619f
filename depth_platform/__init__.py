"""
Order-book depth platform for a single instrument.

Implements feed ingestion, snapshot/delta reconciliation with sequence
gap recovery, and display-ready depth views.
"""
__all__ = ["__version__"]
__version__ = "0.1.0"
