"""
Inventory collection for GCP Cost Report.

Read-only gcloud and kubectl queries normalized into immutable records.
"""

from .collectors import InventoryRepository, resource_counts
from .runner import CommandRunner, ProjectContext, resolve_project_id
from .workloads import WorkloadCollector

__all__ = [
    "CommandRunner",
    "InventoryRepository",
    "ProjectContext",
    "WorkloadCollector",
    "resolve_project_id",
    "resource_counts",
]
