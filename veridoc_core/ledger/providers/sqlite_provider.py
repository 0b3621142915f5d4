from __future__ import annotations
from contextlib import contextmanager
from typing import Optional, List
import json, sqlite3, os, threading

from veridoc_core.ledger.models import EventKind, IdentityRecord, IdentityStatus, LedgerEvent
from veridoc_core.errors import StateConflictError
from veridoc_core.ledger.provider import LedgerStore


class SQLiteLedgerStore(LedgerStore):
    """
    Durable ledger state in a single SQLite file.

    One lock serializes ``transaction()`` blocks on this connection, and the
    outermost block opens ``BEGIN IMMEDIATE`` so other connections to the same
    file wait for the write lock. A block commits on success and rolls back on
    error.
    """

    def __init__(self, path="db/ledger_state.db", busy_timeout: float = 30.0):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(
            path, check_same_thread=False, isolation_level=None, timeout=busy_timeout)
        self._lock = threading.RLock()
        self._depth = 0

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()
        c.execute("""CREATE TABLE IF NOT EXISTS ledger_meta(
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS identities(
            principal TEXT PRIMARY KEY,
            content_address TEXT NOT NULL,
            registered_at TEXT,
            status TEXT NOT NULL,
            acting_verifiers TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS verifiers(
            principal TEXT PRIMARY KEY
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS events(
            seq INTEGER PRIMARY KEY,
            kind TEXT NOT NULL,
            subject TEXT NOT NULL,
            actor TEXT NOT NULL,
            ts TEXT NOT NULL,
            data TEXT
        )""")
        c.execute("CREATE INDEX IF NOT EXISTS idx_events_subject ON events(subject)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_events_actor ON events(actor)")
        c.execute("""CREATE TABLE IF NOT EXISTS replay_guard(
            tx_id TEXT PRIMARY KEY
        )""")

    @contextmanager
    def transaction(self, keys=()):
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self.db.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield
            except BaseException:
                if outermost:
                    self.db.execute("ROLLBACK")
                raise
            else:
                if outermost:
                    self.db.execute("COMMIT")
            finally:
                self._depth -= 1

    def _write(self, sql: str, params: tuple = ()):
        with self.transaction():
            return self.db.execute(sql, params)

    def _read(self, sql: str, params: tuple = ()) -> list:
        with self._lock:
            return self.db.execute(sql, params).fetchall()

    # bootstrap
    def bootstrap(self, owner: str) -> str:
        with self.transaction():
            self.db.execute("INSERT OR IGNORE INTO ledger_meta(key,value) VALUES('owner',?)", (owner,))
            return self.get_owner()

    def get_owner(self) -> Optional[str]:
        rows = self._read("SELECT value FROM ledger_meta WHERE key='owner'")
        return rows[0][0] if rows else None

    # identities
    def get_identity(self, principal: str) -> Optional[IdentityRecord]:
        rows = self._read(
            "SELECT principal,content_address,registered_at,status,acting_verifiers "
            "FROM identities WHERE principal=?", (principal,))
        if not rows: return None
        owner, content_address, registered_at, status, acting = rows[0]
        return IdentityRecord(
            owner=owner,
            content_address=content_address,
            registered_at=registered_at,
            status=IdentityStatus(status),
            acting_verifiers=json.loads(acting),
        )

    def create_identity(self, rec: IdentityRecord) -> None:
        try:
            self._write(
                "INSERT INTO identities(principal,content_address,registered_at,status,acting_verifiers) "
                "VALUES(?,?,?,?,?)",
                (rec.owner, rec.content_address, rec.registered_at, rec.status.value,
                 json.dumps(rec.acting_verifiers)),
            )
        except sqlite3.IntegrityError as e:
            raise StateConflictError(f"identity already registered: {rec.owner}") from e

    def save_identity(self, rec: IdentityRecord) -> None:
        self._write(
            "INSERT INTO identities(principal,content_address,registered_at,status,acting_verifiers) "
            "VALUES(?,?,?,?,?) "
            "ON CONFLICT(principal) DO UPDATE SET content_address=excluded.content_address, "
            "registered_at=excluded.registered_at, status=excluded.status, "
            "acting_verifiers=excluded.acting_verifiers",
            (rec.owner, rec.content_address, rec.registered_at, rec.status.value,
             json.dumps(rec.acting_verifiers)),
        )

    # verifier set
    def is_verifier(self, principal: str) -> bool:
        return bool(self._read("SELECT 1 FROM verifiers WHERE principal=?", (principal,)))

    def add_verifier(self, principal: str) -> None:
        self._write("INSERT OR IGNORE INTO verifiers(principal) VALUES(?)", (principal,))

    def remove_verifier(self, principal: str) -> None:
        self._write("DELETE FROM verifiers WHERE principal=?", (principal,))

    def list_verifiers(self) -> List[str]:
        return [r[0] for r in self._read("SELECT principal FROM verifiers ORDER BY rowid")]

    # audit
    def append_event(self, event: LedgerEvent) -> LedgerEvent:
        with self.transaction():
            row = self.db.execute("SELECT COALESCE(MAX(seq), -1) + 1 FROM events").fetchone()
            event.seq = row[0]
            self.db.execute(
                "INSERT INTO events(seq,kind,subject,actor,ts,data) VALUES(?,?,?,?,?,?)",
                (event.seq, event.kind.value, event.subject, event.actor, event.ts,
                 json.dumps(event.data, separators=(",", ":"), sort_keys=True)),
            )
        return event

    def query_events(self, principal=None, kind: Optional[EventKind] = None) -> List[LedgerEvent]:
        sql = "SELECT seq,kind,subject,actor,ts,data FROM events WHERE 1=1"
        params: list = []
        if principal is not None:
            sql += " AND (subject=? OR actor=?)"
            params += [principal, principal]
        if kind is not None:
            sql += " AND kind=?"
            params.append(EventKind(kind).value)
        sql += " ORDER BY seq"
        events = []
        for seq, k, subject, actor, ts, data in self._read(sql, tuple(params)):
            events.append(LedgerEvent(
                kind=EventKind(k), subject=subject, actor=actor, ts=ts,
                data=json.loads(data) if data else {}, seq=seq,
            ))
        return events

    # replay guard
    def mark_tx(self, tx_id: str) -> bool:
        cur = self._write("INSERT OR IGNORE INTO replay_guard(tx_id) VALUES(?)", (tx_id,))
        return cur.rowcount == 1

    def close(self):
        self.db.close()
