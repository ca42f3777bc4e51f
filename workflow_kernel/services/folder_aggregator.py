"""
workflow_kernel.services.folder_aggregator -- Status buckets and triage folders.

Responsibility:
    Derives the aggregate views the triage screen is built from: per-status
    counts for a workflow (every declared status, zero counts included) and
    the folder tree with per-folder member counts.  Also owns folder
    maintenance: create, move, delete and member assignment.

Architecture position:
    Kernel > Services.  ``build_folder_tree`` and ``flatten`` are pure and
    independently testable; FolderAggregator adds the RecordStore reads and
    writes.

Invariants enforced:
    - Tree building terminates on any parent graph.  A folder whose parent is
      missing, or which sits on a parent cycle, becomes a root; every input
      folder appears exactly once in the output.
    - ``task_count`` is non-recursive: members of the folder itself only.
    - ``delete_folder`` is one atomic unit: members are unassigned, direct
      children move up to the deleted folder's parent, the folder is removed.
    - ``move_folder`` refuses to make a folder its own ancestor, also under
      concurrent moves: the ancestors the check read are re-asserted in the
      same atomic unit as the write.

Failure modes:
    - FolderNotFoundError for an unknown folder or parent id, including a
      folder deleted concurrently with ``delete_folder``.
    - FolderCycleError when a move would create a cycle.
    - FolderConflictError when concurrent moves win every retry.
    - InvalidRecordError for an empty folder name or a non-member table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence
from uuid import UUID

from workflow_kernel.domain.ports import Delete, RecordStore, Update, UpdateWhere
from workflow_kernel.domain.records import FolderNode
from workflow_kernel.domain.workflow import Workflow
from workflow_kernel.exceptions import (
    FolderConflictError,
    FolderCycleError,
    FolderNotFoundError,
    InvalidRecordError,
    StaleStateError,
)
from workflow_kernel.logging_config import get_logger

logger = get_logger("services.folder_aggregator")

FOLDERS = "folders"
DEFAULT_MEMBER_TABLES = ("requests", "company_registration_requests", "verification_requests")
MOVE_ATTEMPTS = 3


@dataclass(frozen=True)
class StatusBucket:
    status: str
    count: int
    label: str


@dataclass(frozen=True)
class FolderTreeNode:
    id: UUID
    name: str
    parent_id: UUID | None
    task_count: int
    children: tuple[FolderTreeNode, ...] = ()


def status_label(status: str) -> str:
    """``name_selected`` -> ``Name Selected``."""
    return " ".join(word.capitalize() for word in status.split("_"))


def _cycle_members(by_id: Mapping[UUID, FolderNode]) -> set[UUID]:
    """Ids of folders that lie on a parent cycle (self-parenting included)."""
    on_cycle: set[UUID] = set()
    done: set[UUID] = set()
    for start in by_id:
        path: list[UUID] = []
        in_path: set[UUID] = set()
        current: UUID | None = start
        while current is not None and current in by_id and current not in done:
            if current in in_path:
                on_cycle.update(path[path.index(current):])
                break
            path.append(current)
            in_path.add(current)
            current = by_id[current].parent_id
        done.update(path)
    return on_cycle


def build_folder_tree(
    nodes: Iterable[FolderNode],
    counts: Mapping[UUID, int],
) -> tuple[FolderTreeNode, ...]:
    """
    Build the folder forest from flat ``nodes``.

    Roots and children are ordered by (name, id).  Duplicate ids keep the
    first occurrence.
    """
    by_id: dict[UUID, FolderNode] = {}
    for node in nodes:
        by_id.setdefault(node.id, node)

    on_cycle = _cycle_members(by_id)

    def is_root(node: FolderNode) -> bool:
        return (
            node.parent_id is None
            or node.parent_id not in by_id
            or node.id in on_cycle
        )

    children: dict[UUID, list[FolderNode]] = {}
    roots: list[FolderNode] = []
    for node in by_id.values():
        if is_root(node):
            roots.append(node)
        else:
            children.setdefault(node.parent_id, []).append(node)

    def sort_key(node: FolderNode) -> tuple[str, str]:
        return (node.name, str(node.id))

    visited: set[UUID] = set()

    def build(node: FolderNode) -> FolderTreeNode:
        visited.add(node.id)
        kids = tuple(
            build(child)
            for child in sorted(children.get(node.id, ()), key=sort_key)
            if child.id not in visited
        )
        return FolderTreeNode(
            id=node.id,
            name=node.name,
            parent_id=node.parent_id,
            task_count=counts.get(node.id, 0),
            children=kids,
        )

    return tuple(build(root) for root in sorted(roots, key=sort_key))


def flatten(roots: Sequence[FolderTreeNode]) -> list[tuple[int, FolderTreeNode]]:
    """Depth-first ``(depth, node)`` pairs, roots at depth 0."""
    out: list[tuple[int, FolderTreeNode]] = []

    def walk(node: FolderTreeNode, depth: int) -> None:
        out.append((depth, node))
        for child in node.children:
            walk(child, depth + 1)

    for root in roots:
        walk(root, 0)
    return out


class FolderAggregator:
    """Status and folder aggregation over a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        member_tables: Sequence[str] = DEFAULT_MEMBER_TABLES,
    ) -> None:
        self._store = store
        self._member_tables = tuple(member_tables)

    @property
    def member_tables(self) -> tuple[str, ...]:
        return self._member_tables

    # ------------------------------------------------------------------
    # Status buckets
    # ------------------------------------------------------------------

    def status_counts(self, workflow: Workflow, table: str) -> list[StatusBucket]:
        """One bucket per declared status of ``workflow``, in declaration order."""
        counts = self._store.count_by(table, "status")
        return [
            StatusBucket(status=state, count=counts.get(state, 0), label=status_label(state))
            for state in workflow.states
        ]

    # ------------------------------------------------------------------
    # Folder tree
    # ------------------------------------------------------------------

    def folder_counts(self) -> dict[UUID, int]:
        """Members per folder summed across the member tables."""
        totals: dict[UUID, int] = {}
        for table in self._member_tables:
            for folder_id, count in self._store.count_by(table, "folder_id").items():
                if folder_id is not None:
                    totals[folder_id] = totals.get(folder_id, 0) + count
        return totals

    def folders(self) -> list[FolderNode]:
        return self._store.query(FOLDERS, order=(("name", "asc"),))

    def build_tree(self, folders: Sequence[FolderNode] | None = None) -> tuple[FolderTreeNode, ...]:
        if folders is None:
            folders = self.folders()
        return build_folder_tree(folders, self.folder_counts())

    def flatten(self, roots: Sequence[FolderTreeNode] | None = None) -> list[tuple[int, FolderTreeNode]]:
        return flatten(self.build_tree() if roots is None else roots)

    # ------------------------------------------------------------------
    # Folder maintenance
    # ------------------------------------------------------------------

    def _require(self, folder_id: UUID) -> FolderNode:
        node = self._store.get(FOLDERS, folder_id)
        if node is None:
            raise FolderNotFoundError(str(folder_id))
        return node

    def create_folder(self, name: str, parent_id: UUID | None = None) -> FolderNode:
        if not name or not name.strip():
            raise InvalidRecordError("Folder", "name must be non-empty")
        if parent_id is not None:
            self._require(parent_id)
        folder_id = self._store.create(FOLDERS, {"name": name.strip(), "parent_id": parent_id})
        logger.info(
            "folder_created",
            extra={"folder_id": str(folder_id), "parent_id": str(parent_id) if parent_id else None},
        )
        return FolderNode(id=folder_id, name=name.strip(), parent_id=parent_id)

    def _ancestry(self, folder_id: UUID, new_parent_id: UUID) -> list[FolderNode]:
        """Folders from ``new_parent_id`` up to its root.  Raises FolderCycleError."""
        by_id = {f.id: f for f in self.folders()}
        if new_parent_id not in by_id:
            raise FolderNotFoundError(str(new_parent_id))
        chain: list[FolderNode] = []
        seen: set[UUID] = set()
        current: UUID | None = new_parent_id
        while current is not None and current in by_id and current not in seen:
            if current == folder_id:
                raise FolderCycleError(str(folder_id), str(new_parent_id))
            seen.add(current)
            chain.append(by_id[current])
            current = by_id[current].parent_id
        return chain

    def move_folder(self, folder_id: UUID, new_parent_id: UUID | None) -> FolderNode:
        """
        Re-parent ``folder_id`` (None makes it a root).

        The write re-asserts the parent link of the folder and of every
        ancestor the cycle check read, so two crossing moves cannot both
        commit.  A lost race is retried against fresh data.
        """
        for attempt in range(1, MOVE_ATTEMPTS + 1):
            node = self._require(folder_id)
            chain = self._ancestry(folder_id, new_parent_id) if new_parent_id is not None else []
            operations = [
                Update(FOLDERS, folder_id, {"parent_id": new_parent_id},
                       expect={"parent_id": node.parent_id}),
            ]
            operations.extend(
                Update(FOLDERS, a.id, {"parent_id": a.parent_id}, expect={"parent_id": a.parent_id})
                for a in chain
            )
            try:
                self._store.transact(operations)
            except StaleStateError:
                logger.info(
                    "folder_move_conflict",
                    extra={"folder_id": str(folder_id), "attempt": attempt},
                )
                continue
            logger.info(
                "folder_moved",
                extra={
                    "folder_id": str(folder_id),
                    "from_parent_id": str(node.parent_id) if node.parent_id else None,
                    "to_parent_id": str(new_parent_id) if new_parent_id else None,
                },
            )
            return FolderNode(id=node.id, name=node.name, parent_id=new_parent_id)
        raise FolderConflictError(str(folder_id), MOVE_ATTEMPTS)

    def delete_folder(self, folder_id: UUID) -> None:
        """Delete a folder, unassigning its members and lifting its children."""
        node = self._require(folder_id)
        new_parent = node.parent_id if node.parent_id != folder_id else None
        operations = [
            UpdateWhere(table, {"folder_id": folder_id}, {"folder_id": None})
            for table in self._member_tables
        ]
        operations.append(UpdateWhere(FOLDERS, {"parent_id": folder_id}, {"parent_id": new_parent}))
        operations.append(Delete(FOLDERS, folder_id))
        try:
            result = self._store.transact(operations)
        except StaleStateError as exc:
            # Deleted by someone else between the read and the write.
            raise FolderNotFoundError(str(folder_id)) from exc
        logger.info(
            "folder_deleted",
            extra={"folder_id": str(folder_id), "rows_affected": result.rows_affected},
        )

    def assign(self, table: str, record_id: UUID, folder_id: UUID | None) -> None:
        """File a member record into ``folder_id`` (None removes it from any folder)."""
        if table not in self._member_tables:
            raise InvalidRecordError("Folder", f"{table} records cannot be filed into folders")
        if folder_id is not None:
            self._require(folder_id)
        self._store.update(table, record_id, {"folder_id": folder_id})
