"""daybook: small personal-productivity command-line tools sharing one data directory."""

__version__ = "0.1.0"
