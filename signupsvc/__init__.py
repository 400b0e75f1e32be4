"""User signup service: creating, reactivating and reporting on toolchain user signups."""

__version__ = "0.1.0"
__all__ = [
    "config",
    "context",
    "errors",
    "identifiers",
    "models",
    "provider",
    "service",
    "signup",
    "verification",
]