import pytest

from veridoc_core.crypto import generate_principal
from veridoc_core.ledger import IdentityLedger, InMemoryLedgerStore, SQLiteLedgerStore


class Principal:
    def __init__(self):
        self.priv, self.pub, self.address = generate_principal()


@pytest.fixture
def make_principal():
    return Principal


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryLedgerStore()
    else:
        s = SQLiteLedgerStore(str(tmp_path / "ledger.db"))
    yield s
    s.close()


@pytest.fixture
def owner():
    return Principal()


@pytest.fixture
def ledger(store, owner):
    return IdentityLedger(store, owner.address)
