"""
Concurrent review of the same request.

Two administrators acting on the same pending request must produce exactly
one committed transition and one audit entry.  The loser is told the
request was already processed.

The deterministic test forces the interleaving with a store hook; the
threaded test runs real concurrent transactions against a file database
(or WORKFLOW_TEST_DATABASE_URL).
"""

import os
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from workflow_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
)
from workflow_kernel.db.store import SqlAlchemyRecordStore
from workflow_kernel.exceptions import InvalidTransitionError, describe_error

from conftest import ADMIN_ID, SECOND_ADMIN_ID, make_engine

pytestmark = [pytest.mark.slow_locks]


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


class TestDeterministicRace:

    def test_loser_gets_concurrent_invalid_transition(
        self, store, session_factory, auth, dispatcher, profiles, deterministic_clock,
        make_financial_request,
    ):
        request_id = make_financial_request()
        winner = make_engine(store, auth, dispatcher, profiles, deterministic_clock)

        def competing_approval():
            winner.transition("financial_request", request_id, SECOND_ADMIN_ID, "approve")

        loser_store = InterleavingStore(session_factory, competing_approval)
        loser = make_engine(loser_store, auth, dispatcher, profiles, deterministic_clock)

        with pytest.raises(InvalidTransitionError) as exc_info:
            loser.transition("financial_request", request_id, ADMIN_ID, "reject")

        assert exc_info.value.concurrent is True
        assert exc_info.value.current_status == "pending"
        assert describe_error(exc_info.value) == (
            "This request has already been processed by another administrator."
        )
        assert store.get("requests", request_id).status.value == "processing"
        entries = store.query("audit_entries")
        assert len(entries) == 1
        assert entries[0].actor_id == SECOND_ADMIN_ID

    def test_company_race_creates_one_company(
        self, store, session_factory, auth, dispatcher, profiles, deterministic_clock,
        make_company_request,
    ):
        request_id = make_company_request(status="name_selected", selected_name="Acme Ltd")
        winner = make_engine(store, auth, dispatcher, profiles, deterministic_clock)
        payload = {"registration_number": "SC-77", "incorporation_date": "2024-03-01"}

        def competing_rejection():
            winner.transition("company_registration", request_id, SECOND_ADMIN_ID, "reject")

        loser = make_engine(
            InterleavingStore(session_factory, competing_rejection),
            auth, dispatcher, profiles, deterministic_clock,
        )

        with pytest.raises(InvalidTransitionError):
            loser.transition("company_registration", request_id, ADMIN_ID, "approve", payload)

        assert store.query("registered_companies") == []
        assert len(store.query("audit_entries")) == 1


@pytest.fixture
def threaded_database_url(tmp_path):
    return os.environ.get(
        "WORKFLOW_TEST_DATABASE_URL",
        f"sqlite:///{tmp_path / 'race.db'}",
    )


@pytest.fixture
def threaded_store(threaded_database_url):
    engine = build_engine(threaded_database_url)
    drop_tables(engine)
    create_tables(engine)
    yield SqlAlchemyRecordStore(build_session_factory(engine))
    drop_tables(engine)
    engine.dispose()


class TestThreadedRace:

    @pytest.mark.parametrize("round_", range(5))
    def test_exactly_one_winner(
        self, threaded_store, auth, dispatcher, profiles, deterministic_clock, round_,
    ):
        created = deterministic_clock.now()
        request_id = threaded_store.create("requests", {
            "submitter_id": ADMIN_ID,
            "kind": "deposit",
            "amount": 100,
            "currency": "EUR",
            "status": "pending",
            "created_at": created,
            "updated_at": created,
        })
        engine = make_engine(threaded_store, auth, dispatcher, profiles, deterministic_clock)
        barrier = Barrier(2)

        def review(actor_id, action):
            barrier.wait()
            try:
                return engine.transition("financial_request", request_id, actor_id, action)
            except InvalidTransitionError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(
                lambda args: review(*args),
                [(ADMIN_ID, "approve"), (SECOND_ADMIN_ID, "reject")],
            ))

        winners = [r for r in results if not isinstance(r, InvalidTransitionError)]
        losers = [r for r in results if isinstance(r, InvalidTransitionError)]
        assert len(winners) == 1
        assert len(losers) == 1

        final = threaded_store.get("requests", request_id)
        assert final.status.value == winners[0].to_state
        entries = threaded_store.query("audit_entries", {"related_request_id": request_id})
        assert len(entries) == 1
        assert entries[0].id == winners[0].audit_entry_id
