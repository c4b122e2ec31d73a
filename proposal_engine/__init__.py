"""Audit-to-proposal generation: deterministic pricing plus narrative fill."""

__version__ = "1.0.0"
