"""Sizing, naming, error classification, operation limiting and GPU locking for ELF VM nodes."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "hostagent",
    "hostsets",
    "limiter",
    "models",
    "resources",
    "util",
]