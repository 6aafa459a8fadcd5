# src/family_album/services/__init__.py
"""Business logic services for the Family Album application."""

from .ingestion import IngestionService, UploadLimits
from .post_workflow import NextStep, PostWorkflow
from .storage import LocalStorage, get_storage

__all__ = [
    "IngestionService",
    "LocalStorage",
    "NextStep",
    "PostWorkflow",
    "UploadLimits",
    "get_storage",
]
