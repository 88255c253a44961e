"""Package initializer for the backend `ponmgr` package.
Re-exports the factories and extensions defined in `init.py`.
"""
from .init import (
    create_acs_app,
    create_app,
    db,
    migrate,
)

__all__ = [
    "create_acs_app",
    "create_app",
    "db",
    "migrate",
]
