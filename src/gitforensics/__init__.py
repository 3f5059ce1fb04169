"""Git-history forensics for files: coupling, volatility, drift and tacit knowledge."""

__version__ = "0.1.0"
