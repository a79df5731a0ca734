"""Code generator settings, command-line handling, extension readers and in-memory reference services."""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "cli",
    "configuration",
    "extension",
    "petstore",
    "strict_petstore",
    "things",
]