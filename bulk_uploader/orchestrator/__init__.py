"""Orchestrator package - coordinates bulk uploads."""
from .batch import BatchCoordinator
from .core import BulkUploader
from .models import UploadTask, UploadSession

__all__ = ["BulkUploader", "BatchCoordinator", "UploadTask", "UploadSession"]
