"""Decoding of counted UTF-16 strings and PE images held in memory snapshots."""

__version__ = "0.1.0"
__all__ = ["memory", "ustring", "pe", "pe_exports", "pe_debug"]