"""Service layer - progress engine, curriculum access and file storage."""

from app.services.progress import (
    Curriculum,
    Ledger,
    ProgressSummary,
    ProgressTree,
    build_progress_tree,
    compute_progress,
    normalize_resource_url,
    resolve_subject_ids,
)
from app.services.storage import LocalStorageService, StorageService, get_storage_service

__all__ = [
    "Curriculum",
    "Ledger",
    "LocalStorageService",
    "ProgressSummary",
    "ProgressTree",
    "StorageService",
    "build_progress_tree",
    "compute_progress",
    "get_storage_service",
    "normalize_resource_url",
    "resolve_subject_ids",
]
