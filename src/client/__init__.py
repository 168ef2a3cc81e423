"""Task list client: remote API access, local cache mirror and reconciliation."""

from src.client.local_cache import LocalCache, build_cache_backend
from src.client.reconciler import BulkResult, LoadResult, MutationResult, TaskReconciler
from src.client.remote import TaskApiClient
from src.client.selection import SelectionState, TaskSelection
from src.client.view import ViewOptions, derive_view, is_search_active, search_suggestions


__all__ = [
    "BulkResult",
    "LoadResult",
    "LocalCache",
    "MutationResult",
    "SelectionState",
    "TaskApiClient",
    "TaskReconciler",
    "TaskSelection",
    "ViewOptions",
    "build_cache_backend",
    "derive_view",
    "is_search_active",
    "search_suggestions",
]
