from .aggregation import build_indices, merge_indices, summarize
from .state import AppState
from .enrichment import EnrichmentItemFailure, EnrichmentService
from .importer import ImportResult, ImportService, restore_state
from .query import QueryFacade, UnknownChartError
from .session import SessionStore, StorageFailure

__all__ = [
    "AppState",
    "EnrichmentItemFailure",
    "EnrichmentService",
    "ImportResult",
    "ImportService",
    "QueryFacade",
    "SessionStore",
    "StorageFailure",
    "UnknownChartError",
    "build_indices",
    "merge_indices",
    "restore_state",
    "summarize",
]
