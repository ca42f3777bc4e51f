"""
Workflow Kernel - administrative approval workflows

Reviewable user requests move from submission to a terminal outcome through
declared state machines, with:
- Admin-only transitions validated before anything is written
- Status change and audit entry committed as one atomic unit
- Compare-and-set serialization of concurrent reviewers
- Best-effort, time-bounded notification after commit
- Read-side audit trail and folder/status aggregation
"""

__version__ = "0.1.0"
