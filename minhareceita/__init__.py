"""Check, read, transform and serve the Brazilian Federal Revenue CNPJ open data."""

__version__ = "0.1.0"