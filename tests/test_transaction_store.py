import time

import fakeredis
import pytest

from src.database.transactions import TransactionStore
from src.database.transactions_real import RedisTransactionStore
from src.integrations.contracts.interfaces import Transaction, TransactionStatus


def _tx(reference, status=TransactionStatus.PENDING, created_at=None, **kwargs):
    created_at = time.time() if created_at is None else created_at
    return Transaction(reference=reference, status=status, created_at=created_at, updated_at=created_at, **kwargs)


@pytest.fixture(params=["memory", "redis"])
def store(request):
    """Both store implementations behind the same interface."""
    if request.param == "redis":
        return RedisTransactionStore(client=fakeredis.FakeRedis(decode_responses=True))
    return TransactionStore()


def test_get_returns_copy_not_live_record(store):
    store.set(_tx("LP1"))

    fetched = store.get("LP1")
    fetched.status = TransactionStatus.COMPLETED

    assert store.get("LP1").status == TransactionStatus.PENDING
    assert store.get("missing") is None


def test_compare_and_set_only_swaps_from_expected_status(store):
    store.set(_tx("LP1"))

    assert store.compare_and_set("LP1", TransactionStatus.PENDING, TransactionStatus.COMPLETED) is True
    assert store.compare_and_set("LP1", TransactionStatus.PENDING, TransactionStatus.FAILED) is False
    assert store.get("LP1").status == TransactionStatus.COMPLETED
    assert store.compare_and_set("unknown", TransactionStatus.PENDING, TransactionStatus.FAILED) is False


def test_resolve_records_unknown_reference_and_never_changes_terminal(store):
    assert store.resolve("LP9", TransactionStatus.COMPLETED) == TransactionStatus.COMPLETED
    assert store.get("LP9").status == TransactionStatus.COMPLETED

    assert store.resolve("LP9", TransactionStatus.FAILED) == TransactionStatus.COMPLETED
    assert store.get("LP9").status == TransactionStatus.COMPLETED


def test_resolve_updates_pending_record(store):
    store.set(_tx("LP2", phone="254700000000", amount=10))

    assert store.resolve("LP2", TransactionStatus.FAILED) == TransactionStatus.FAILED

    tx = store.get("LP2")
    assert tx.status == TransactionStatus.FAILED
    assert tx.phone == "254700000000"
    assert tx.amount == 10
    assert store.first_pending() is None


def test_first_pending_follows_creation_order(store):
    now = time.time()
    store.set(_tx("A", status=TransactionStatus.COMPLETED, created_at=now))
    store.set(_tx("B", created_at=now + 1))
    store.set(_tx("C", created_at=now + 2))

    assert store.first_pending().reference == "B"
    store.compare_and_set("B", TransactionStatus.PENDING, TransactionStatus.FAILED)
    assert store.first_pending().reference == "C"
    store.compare_and_set("C", TransactionStatus.PENDING, TransactionStatus.FAILED)
    assert store.first_pending() is None


def test_aliases_resolve_to_primary_reference(store):
    store.set(_tx("LP1", merchant_request_id="MR-1", external_reference="REF_1"))
    store.add_alias("CHK-1", "LP1")

    assert store.find_by_alias("MR-1").reference == "LP1"
    assert store.find_by_alias("REF_1").reference == "LP1"
    assert store.find_by_alias("CHK-1").reference == "LP1"
    assert store.find_by_alias("nope") is None


def test_ping(store):
    assert store.ping() is True


def test_redis_records_carry_the_ttl():
    server = fakeredis.FakeRedis(decode_responses=True)
    store = RedisTransactionStore(client=server, ttl_seconds=60)
    store.set(_tx("LP1", merchant_request_id="MR-1"))

    assert 0 < server.ttl("transaction:LP1") <= 60
    assert 0 < server.ttl("transaction_alias:MR-1") <= 60

    store.compare_and_set("LP1", TransactionStatus.PENDING, TransactionStatus.COMPLETED)
    assert 0 < server.ttl("transaction:LP1") <= 60


def test_redis_drops_pending_index_entries_for_expired_records():
    server = fakeredis.FakeRedis(decode_responses=True)
    store = RedisTransactionStore(client=server)
    store.set(_tx("LP1"))
    server.delete("transaction:LP1")

    assert store.purge_expired() == 1
    assert store.first_pending() is None


def test_expired_transactions_and_their_aliases_are_evicted(clock):
    store = TransactionStore(ttl_seconds=60, clock=clock)
    store.set(_tx("OLD", created_at=clock.now, merchant_request_id="MR-OLD"))
    store.set(_tx("NEW", created_at=clock.now + 30))

    clock.now += 61

    assert store.get("OLD") is None
    assert store.find_by_alias("MR-OLD") is None
    assert store.get("NEW") is not None
    assert len(store) == 1


def test_eviction_stops_at_first_live_record(clock):
    store = TransactionStore(ttl_seconds=60, clock=clock)
    store.set(_tx("OLD", created_at=clock.now))
    store.set(_tx("LIVE", created_at=clock.now + 30))
    # Out of creation order: only reached by a scan that does not stop early
    store.set(_tx("LATE", created_at=clock.now))

    clock.now += 61

    assert store.purge_expired() == 1
    assert store.get("OLD") is None
    assert store.get("LIVE") is not None
    assert store.get("LATE") is not None


def test_updating_a_record_keeps_its_eviction_slot(clock):
    store = TransactionStore(ttl_seconds=60, clock=clock)
    store.set(_tx("FIRST", created_at=clock.now))
    store.set(_tx("SECOND", created_at=clock.now + 30))
    store.set(_tx("FIRST", status=TransactionStatus.COMPLETED, created_at=clock.now))

    clock.now += 61

    assert store.purge_expired() == 1
    assert store.get("FIRST") is None
    assert store.get("SECOND") is not None


def test_zero_ttl_disables_eviction(clock):
    store = TransactionStore(ttl_seconds=0, clock=clock)
    store.set(_tx("A", created_at=clock.now))

    clock.now += 10 * 365 * 86400

    assert store.purge_expired() == 0
    assert store.get("A") is not None
