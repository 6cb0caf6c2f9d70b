"""QR link service: expiring short links for QR codes."""

__version__ = "1.0.0"
