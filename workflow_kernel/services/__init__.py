"""Services for the workflow kernel (write side)."""

from workflow_kernel.services.collaborators import (
    LoggingNotifier,
    StaticAdminDirectory,
    StaticProfileDirectory,
)
from workflow_kernel.services.folder_aggregator import (
    FolderAggregator,
    FolderTreeNode,
    StatusBucket,
    build_folder_tree,
)
from workflow_kernel.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationResult,
    NotificationStatus,
)
from workflow_kernel.services.workflow_engine import TransitionOutcome, WorkflowEngine

__all__ = [
    "FolderAggregator",
    "FolderTreeNode",
    "LoggingNotifier",
    "NotificationDispatcher",
    "NotificationResult",
    "NotificationStatus",
    "StaticAdminDirectory",
    "StaticProfileDirectory",
    "StatusBucket",
    "TransitionOutcome",
    "WorkflowEngine",
    "build_folder_tree",
]
