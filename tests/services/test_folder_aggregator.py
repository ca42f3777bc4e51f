"""
Tests for FolderAggregator and the pure folder-tree builder.

Status buckets list every declared status (zero counts included); the tree
builder terminates on any parent graph and places every folder exactly
once; folder deletion is one atomic unit; moves that race with other moves
never commit a cycle.
"""

from uuid import UUID, uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from sqlalchemy.exc import OperationalError

from workflow_kernel.db.store import SqlAlchemyRecordStore
from workflow_kernel.domain.ports import Delete
from workflow_kernel.domain.records import FolderNode
from workflow_kernel.exceptions import (
    FolderConflictError,
    FolderCycleError,
    FolderNotFoundError,
    InvalidRecordError,
    StaleStateError,
)
from workflow_kernel.services.folder_aggregator import (
    FolderAggregator,
    build_folder_tree,
    flatten,
    status_label,
)
from workflow_modules.company_registration import COMPANY_REGISTRATION_WORKFLOW
from workflow_modules.financial_requests import FINANCIAL_REQUEST_WORKFLOW


def folder(name, parent_id=None, folder_id=None):
    return FolderNode(id=folder_id or uuid4(), name=name, parent_id=parent_id)


class TestStatusCounts:

    def test_every_declared_status_listed(self, folder_aggregator, make_financial_request):
        make_financial_request()
        make_financial_request()
        make_financial_request(status="rejected")

        buckets = folder_aggregator.status_counts(FINANCIAL_REQUEST_WORKFLOW, "requests")

        assert [(b.status, b.count) for b in buckets] == [
            ("pending", 2),
            ("processing", 0),
            ("completed", 0),
            ("rejected", 1),
        ]

    def test_labels(self, folder_aggregator, make_company_request):
        make_company_request(status="name_selected", selected_name="Acme Ltd")

        buckets = folder_aggregator.status_counts(
            COMPANY_REGISTRATION_WORKFLOW, "company_registration_requests",
        )

        by_status = {b.status: b for b in buckets}
        assert by_status["name_selected"].label == "Name Selected"
        assert by_status["name_selected"].count == 1
        assert sum(b.count for b in buckets) == 1

    @pytest.mark.parametrize(
        "status, label",
        [("pending", "Pending"), ("requested_more_info", "Requested More Info")],
    )
    def test_status_label(self, status, label):
        assert status_label(status) == label


class TestBuildFolderTree:

    def test_nested_tree_sorted_by_name(self):
        root = folder("Withdrawals")
        other = folder("Deposits")
        large = folder("Large", parent_id=root.id)
        flagged = folder("Flagged", parent_id=root.id)

        roots = build_folder_tree([root, large, other, flagged], {large.id: 3, root.id: 1})

        assert [r.name for r in roots] == ["Deposits", "Withdrawals"]
        withdrawals = roots[1]
        assert [c.name for c in withdrawals.children] == ["Flagged", "Large"]
        assert withdrawals.task_count == 1
        assert withdrawals.children[1].task_count == 3
        assert roots[0].task_count == 0

    def test_missing_parent_becomes_root(self):
        orphan = folder("Orphan", parent_id=uuid4())

        (root,) = build_folder_tree([orphan], {})

        assert root.id == orphan.id

    def test_cycle_members_become_roots(self):
        a_id, b_id = uuid4(), uuid4()
        a = folder("A", parent_id=b_id, folder_id=a_id)
        b = folder("B", parent_id=a_id, folder_id=b_id)
        tail = folder("Tail", parent_id=a_id)
        selfish = folder("Self", folder_id=UUID(int=7), parent_id=UUID(int=7))

        roots = build_folder_tree([a, b, tail, selfish], {})

        assert [r.name for r in roots] == ["A", "B", "Self"]
        assert [c.name for c in roots[0].children] == ["Tail"]

    def test_duplicate_ids_keep_first(self):
        shared = uuid4()

        roots = build_folder_tree([folder("First", folder_id=shared), folder("Second", folder_id=shared)], {})

        assert [r.name for r in roots] == ["First"]

    def test_flatten_depths(self):
        root = folder("Root")
        child = folder("Child", parent_id=root.id)
        grandchild = folder("Grandchild", parent_id=child.id)

        rows = flatten(build_folder_tree([grandchild, child, root], {}))

        assert [(depth, node.name) for depth, node in rows] == [
            (0, "Root"),
            (1, "Child"),
            (2, "Grandchild"),
        ]

    @settings(max_examples=200, deadline=None)
    @given(
        st.integers(min_value=0, max_value=12).flatmap(
            lambda n: st.lists(
                st.one_of(st.none(), st.integers(min_value=0, max_value=n + 2)),
                min_size=n,
                max_size=n,
            )
        )
    )
    def test_every_folder_appears_exactly_once(self, parents):
        ids = [UUID(int=i + 1) for i in range(len(parents))]
        nodes = [
            FolderNode(
                id=ids[i],
                name=f"f{i % 3}",
                parent_id=None if p is None else UUID(int=p + 1),
            )
            for i, p in enumerate(parents)
        ]

        placed = [node.id for _, node in flatten(build_folder_tree(nodes, {}))]

        assert sorted(placed) == sorted(ids)


class TestFolderMaintenance:

    def test_create_and_tree_counts(
        self, folder_aggregator, make_financial_request, make_company_request,
    ):
        parent = folder_aggregator.create_folder("  Escalations ")
        child = folder_aggregator.create_folder("Large withdrawals", parent_id=parent.id)
        make_financial_request(folder_id=child.id)
        make_financial_request(folder_id=child.id)
        make_company_request(folder_id=parent.id)

        (root,) = folder_aggregator.build_tree()

        assert root.name == "Escalations"
        assert root.task_count == 1
        assert root.children[0].task_count == 2

    def test_create_rejects_blank_name(self, folder_aggregator):
        with pytest.raises(InvalidRecordError):
            folder_aggregator.create_folder("   ")

    def test_create_under_unknown_parent(self, folder_aggregator):
        with pytest.raises(FolderNotFoundError):
            folder_aggregator.create_folder("Child", parent_id=uuid4())

    def test_move(self, folder_aggregator):
        a = folder_aggregator.create_folder("A")
        b = folder_aggregator.create_folder("B")

        moved = folder_aggregator.move_folder(b.id, a.id)

        assert moved.parent_id == a.id
        (root,) = folder_aggregator.build_tree()
        assert root.children[0].id == b.id

    def test_move_under_descendant_is_cycle(self, folder_aggregator):
        a = folder_aggregator.create_folder("A")
        b = folder_aggregator.create_folder("B", parent_id=a.id)
        c = folder_aggregator.create_folder("C", parent_id=b.id)

        with pytest.raises(FolderCycleError):
            folder_aggregator.move_folder(a.id, c.id)
        with pytest.raises(FolderCycleError):
            folder_aggregator.move_folder(a.id, a.id)

    def test_move_to_root(self, folder_aggregator):
        a = folder_aggregator.create_folder("A")
        b = folder_aggregator.create_folder("B", parent_id=a.id)

        folder_aggregator.move_folder(b.id, None)

        assert [r.name for r in folder_aggregator.build_tree()] == ["A", "B"]

    def test_delete_lifts_children_and_unassigns_members(
        self, folder_aggregator, store, make_financial_request, make_verification_request,
    ):
        top = folder_aggregator.create_folder("Top")
        doomed = folder_aggregator.create_folder("Doomed", parent_id=top.id)
        kept = folder_aggregator.create_folder("Kept", parent_id=doomed.id)
        request_id = make_financial_request(folder_id=doomed.id)
        verification_id = make_verification_request(folder_id=doomed.id)

        folder_aggregator.delete_folder(doomed.id)

        assert store.get("folders", doomed.id) is None
        assert store.get("folders", kept.id).parent_id == top.id
        assert store.get("requests", request_id).folder_id is None
        assert store.get("verification_requests", verification_id).folder_id is None

    def test_delete_root_makes_children_roots(self, folder_aggregator):
        root = folder_aggregator.create_folder("Root")
        folder_aggregator.create_folder("Child", parent_id=root.id)

        folder_aggregator.delete_folder(root.id)

        (only,) = folder_aggregator.build_tree()
        assert only.name == "Child"
        assert only.parent_id is None

    def test_delete_is_atomic(self, store, make_financial_request):
        class FailingDeleteStore(SqlAlchemyRecordStore):
            def _apply(self, session, op, table):
                if isinstance(op, Delete):
                    raise OperationalError("DELETE FROM folders", {}, Exception("disk I/O error"))
                return super()._apply(session, op, table)

        failing = FailingDeleteStore(store._factory)
        aggregator = FolderAggregator(failing)
        parent = aggregator.create_folder("Parent")
        child = aggregator.create_folder("Child", parent_id=parent.id)
        request_id = make_financial_request(folder_id=parent.id)

        with pytest.raises(OperationalError):
            aggregator.delete_folder(parent.id)

        assert store.get("folders", parent.id) is not None
        assert store.get("folders", child.id).parent_id == parent.id
        assert store.get("requests", request_id).folder_id == parent.id

    def test_concurrent_delete_reports_not_found(self, store, make_financial_request):
        aggregator = FolderAggregator(store)
        doomed = aggregator.create_folder("Doomed")
        request_id = make_financial_request(folder_id=doomed.id)

        def competing_delete():
            FolderAggregator(store).delete_folder(doomed.id)

        racing = FolderAggregator(InterleavingStore(store._factory, competing_delete))

        with pytest.raises(FolderNotFoundError):
            racing.delete_folder(doomed.id)

        assert store.get("folders", doomed.id) is None
        assert store.get("requests", request_id).folder_id is None

    def test_delete_unknown(self, folder_aggregator):
        with pytest.raises(FolderNotFoundError):
            folder_aggregator.delete_folder(uuid4())

    def test_assign_and_unassign(self, folder_aggregator, store, make_financial_request):
        inbox = folder_aggregator.create_folder("Inbox")
        request_id = make_financial_request()

        folder_aggregator.assign("requests", request_id, inbox.id)
        assert folder_aggregator.folder_counts() == {inbox.id: 1}

        folder_aggregator.assign("requests", request_id, None)
        assert folder_aggregator.folder_counts() == {}

    def test_assign_rejects_non_member_table(self, folder_aggregator):
        inbox = folder_aggregator.create_folder("Inbox")

        with pytest.raises(InvalidRecordError):
            folder_aggregator.assign("audit_entries", uuid4(), inbox.id)

    def test_flatten_from_store(self, folder_aggregator):
        a = folder_aggregator.create_folder("A")
        folder_aggregator.create_folder("A1", parent_id=a.id)

        assert [(d, n.name) for d, n in folder_aggregator.flatten()] == [(0, "A"), (1, "A1")]


class InterleavingStore(SqlAlchemyRecordStore):
    """Runs ``before_commit`` once, just before the first atomic unit."""

    def __init__(self, session_factory, before_commit):
        super().__init__(session_factory)
        self._before_commit = before_commit

    def transact(self, operations):
        hook, self._before_commit = self._before_commit, None
        if hook is not None:
            hook()
        return super().transact(operations)


class TestConcurrentMoves:

    def test_crossing_moves_cannot_form_a_cycle(self, store):
        aggregator = FolderAggregator(store)
        a = aggregator.create_folder("A")
        b = aggregator.create_folder("B")

        def competing_move():
            FolderAggregator(store).move_folder(b.id, a.id)

        racing = FolderAggregator(InterleavingStore(store._factory, competing_move))

        with pytest.raises(FolderCycleError):
            racing.move_folder(a.id, b.id)

        assert store.get("folders", a.id).parent_id is None
        assert store.get("folders", b.id).parent_id == a.id

    def test_lost_race_is_retried(self, store):
        aggregator = FolderAggregator(store)
        a = aggregator.create_folder("A")
        b = aggregator.create_folder("B")
        c = aggregator.create_folder("C")

        def competing_move():
            FolderAggregator(store).move_folder(a.id, c.id)

        racing = FolderAggregator(InterleavingStore(store._factory, competing_move))

        moved = racing.move_folder(a.id, b.id)

        assert moved.parent_id == b.id
        assert store.get("folders", a.id).parent_id == b.id

    def test_persistent_conflict_gives_up(self, store):
        class AlwaysStaleStore(SqlAlchemyRecordStore):
            def transact(self, operations):
                raise StaleStateError("folders", "*", {})

        aggregator = FolderAggregator(store)
        a = aggregator.create_folder("A")
        b = aggregator.create_folder("B")

        with pytest.raises(FolderConflictError) as exc_info:
            FolderAggregator(AlwaysStaleStore(store._factory)).move_folder(a.id, b.id)

        assert exc_info.value.attempts == 3
        assert store.get("folders", a.id).parent_id is None
