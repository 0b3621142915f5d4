import threading
import pytest

from veridoc_core.errors import InvariantViolationError, StateConflictError
from veridoc_core.ledger import (
    EventKind, IdentityLedger, IdentityRecord, IdentityStatus, InMemoryLedgerStore,
    SQLiteLedgerStore,
    load_ledger_store,
)


def test_sqlite_state_survives_reopen(tmp_path, owner, make_principal):
    db = str(tmp_path / "ledger.db")
    v, u = make_principal(), make_principal()

    store = SQLiteLedgerStore(db)
    ledger = IdentityLedger(store, owner.address)
    ledger.add_verifier(owner.address, v.address)
    ledger.register_identity(u.address, "manifest")
    ledger.verify_identity(v.address, u.address)
    store.close()

    store = SQLiteLedgerStore(db)
    ledger = IdentityLedger(store, owner.address)
    assert ledger.get_status(u.address) == IdentityStatus.VERIFIED
    assert ledger.get_content_address(u.address) == "manifest"
    assert ledger.get_verifiers_of(u.address) == [v.address]
    assert ledger.list_verifiers() == [owner.address, v.address]
    # reopening does not bootstrap again
    assert len(ledger.events(kind=EventKind.VERIFIER_ADDED)) == 2
    store.close()


def test_reopen_with_other_owner_fails(tmp_path, owner, make_principal):
    db = str(tmp_path / "ledger.db")
    store = SQLiteLedgerStore(db)
    IdentityLedger(store, owner.address)
    store.close()

    store = SQLiteLedgerStore(db)
    with pytest.raises(InvariantViolationError):
        IdentityLedger(store, make_principal().address)
    store.close()


def test_sqlite_schema_exists(tmp_path):
    store = SQLiteLedgerStore(str(tmp_path / "ledger.db"))
    tables = {r[0] for r in store.db.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"identities", "verifiers", "events", "ledger_meta", "replay_guard"} <= tables
    store.close()


def test_replay_guard(store):
    assert store.mark_tx("abc")
    assert not store.mark_tx("abc")
    assert store.mark_tx("def")


def test_load_ledger_store(monkeypatch, tmp_path):
    monkeypatch.delenv("VERIDOC_LEDGER_PROVIDER", raising=False)
    assert isinstance(load_ledger_store(), InMemoryLedgerStore)

    monkeypatch.setenv("VERIDOC_LEDGER_PROVIDER", "sqlite")
    monkeypatch.setenv("VERIDOC_DB_PATH", str(tmp_path / "env.db"))
    s = load_ledger_store()
    assert isinstance(s, SQLiteLedgerStore)
    s.close()

    s = load_ledger_store({"provider": "sqlite", "sqlite_path": str(tmp_path / "cfg.db")})
    assert isinstance(s, SQLiteLedgerStore)
    s.close()

    with pytest.raises(ValueError):
        load_ledger_store({"provider": "postgres"})


def test_racing_verifiers_only_one_wins(ledger, owner, make_principal):
    verifiers = [make_principal() for _ in range(6)]
    for v in verifiers:
        ledger.add_verifier(owner.address, v.address)
    u = make_principal()
    ledger.register_identity(u.address, "h")

    barrier = threading.Barrier(len(verifiers))
    wins, conflicts = [], []

    def race(v):
        barrier.wait()
        try:
            ledger.verify_identity(v.address, u.address)
            wins.append(v.address)
        except StateConflictError:
            conflicts.append(v.address)

    threads = [threading.Thread(target=race, args=(v,)) for v in verifiers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(wins) == 1
    assert len(conflicts) == len(verifiers) - 1
    assert ledger.get_verifiers_of(u.address) == wins


def test_concurrent_registrations_are_independent(ledger, make_principal):
    users = [make_principal() for _ in range(10)]

    threads = [
        threading.Thread(target=ledger.register_identity, args=(u.address, f"m-{i}"))
        for i, u in enumerate(users)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for i, u in enumerate(users):
        assert ledger.get_status(u.address) == IdentityStatus.PENDING
        assert ledger.get_content_address(u.address) == f"m-{i}"
    assert len(ledger.events(kind=EventKind.IDENTITY_REGISTERED)) == len(users)


def test_create_identity_refuses_existing_record(store, make_principal):
    u = make_principal()
    rec = IdentityRecord(owner=u.address, content_address="h1",
                         registered_at="t", status=IdentityStatus.PENDING)
    store.create_identity(rec)
    with pytest.raises(StateConflictError):
        store.create_identity(IdentityRecord(owner=u.address, content_address="h2",
                                             registered_at="t", status=IdentityStatus.PENDING))
    assert store.get_identity(u.address).content_address == "h1"


def test_sqlite_connections_on_one_file_serialize_registration(tmp_path, owner, make_principal):
    db = str(tmp_path / "shared.db")
    store_a, store_b = SQLiteLedgerStore(db), SQLiteLedgerStore(db)
    ledger_a = IdentityLedger(store_a, owner.address)
    ledger_b = IdentityLedger(store_b, owner.address)
    u = make_principal()
    outcome = []

    def register_from_b():
        try:
            ledger_b.register_identity(u.address, "h-from-b")
            outcome.append("registered")
        except StateConflictError:
            outcome.append("conflict")

    racer = threading.Thread(target=register_from_b)

    def clock_with_race():
        # b starts while a is between its status check and its write
        racer.start()
        racer.join(timeout=0.2)
        return "2026-01-01T00:00:00Z"

    ledger_a.clock = clock_with_race
    ledger_a.register_identity(u.address, "h-from-a")
    racer.join()

    assert outcome == ["conflict"]
    assert ledger_a.get_content_address(u.address) == "h-from-a"
    assert ledger_b.get_content_address(u.address) == "h-from-a"
    assert len(ledger_b.events(kind=EventKind.IDENTITY_REGISTERED)) == 1
    store_a.close()
    store_b.close()


def test_memory_lock_pool_does_not_grow(make_principal):
    store = InMemoryLedgerStore()
    before = len(store._locks)
    for _ in range(200):
        with store.transaction([make_principal().address]):
            pass
    assert len(store._locks) == before
