# app/dependencies/__init__.py

from .session import (
    get_registry,
    get_view,
    get_view_session,
    persist_identity,
)

__all__ = [
    "get_registry",
    "get_view",
    "get_view_session",
    "persist_identity",
]
