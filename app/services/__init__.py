from .identity_store import IdentityStore
from .response_backend import (
    ResponseBackend,
    SqlResponseBackend,
    SupabaseBackend,
    create_backend,
)
from .session_registry import SessionRegistry, ViewSession
from .sync_adapter import Subscription, SyncAdapter, SyncAdapterError
from .view_model import ViewModel

__all__ = [
    "IdentityStore",
    "ResponseBackend",
    "SqlResponseBackend",
    "SupabaseBackend",
    "create_backend",
    "SessionRegistry",
    "ViewSession",
    "Subscription",
    "SyncAdapter",
    "SyncAdapterError",
    "ViewModel",
]
