"""SQLite-backed stand-in ledger for local runs and tests.

One wallet, one address, no signatures and no consensus: units start out
pending and become stable only when ``stabilize`` is called.
"""

import sqlite3
import uuid
from pathlib import Path
from typing import Iterable, Optional

import structlog

from db import utc_timestamp, wal_connect

from .ledger import CompositionError, InsufficientFundsError, LedgerClient, LedgerNetworkError
from .models import CapacityUnit, FeedValue, Output, StoredFeed

logger = structlog.get_logger().bind(source="sandbox_ledger")


class SandboxLedger(LedgerClient):
    """Local ledger keeping units, outputs and data feeds in sqlite."""

    def __init__(self, db_path: str | Path, address: str = "SANDBOX-ORACLE-ADDRESS", fee: int = 600):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._address = address
        self.fee = fee
        self._failures: list[type] = []
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS units (
                    unit TEXT PRIMARY KEY,
                    author TEXT NOT NULL,
                    is_stable INTEGER NOT NULL DEFAULT 0,
                    creation_date TIMESTAMP NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS outputs (
                    output_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    unit TEXT NOT NULL REFERENCES units(unit),
                    address TEXT NOT NULL,
                    amount INTEGER NOT NULL,
                    is_spent INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS fee_credits (
                    credit_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    address TEXT NOT NULL,
                    amount INTEGER NOT NULL,
                    is_spent INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS data_feeds (
                    unit TEXT NOT NULL REFERENCES units(unit),
                    feed_name TEXT NOT NULL,
                    value TEXT,
                    int_value INTEGER
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_outputs_address ON outputs(address, is_spent)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_data_feeds_name ON data_feeds(feed_name)")

    @property
    def address(self) -> str:
        return self._address

    # --- sandbox controls ---

    def fund(self, amount: int, count: int = 1, stable: bool = True) -> str:
        """Create a unit paying ``count`` outputs of ``amount`` to the oracle."""
        unit = self._new_unit_id()
        with wal_connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO units (unit, author, is_stable, creation_date) VALUES (?, ?, ?, ?)",
                (unit, "FAUCET", int(stable), utc_timestamp()),
            )
            conn.executemany(
                "INSERT INTO outputs (unit, address, amount) VALUES (?, ?, ?)",
                [(unit, self._address, amount)] * count,
            )
        logger.info("sandbox_funded", unit=unit, amount=amount, count=count)
        return unit

    def credit_fees(self, amount: int) -> None:
        with wal_connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO fee_credits (address, amount) VALUES (?, ?)", (self._address, amount)
            )

    def fail_next_posts(self, *errors: type) -> None:
        """Make the next posts raise the given PublicationError classes, in order."""
        self._failures.extend(errors)

    def stabilize(self, unit_ids: Optional[Iterable[str]] = None) -> list[str]:
        """Mark pending units stable; returns the units that changed."""
        with wal_connect(self.db_path) as conn:
            if unit_ids is None:
                rows = conn.execute("SELECT unit FROM units WHERE is_stable = 0").fetchall()
            else:
                ids = list(unit_ids)
                placeholders = ",".join("?" * len(ids))
                rows = conn.execute(
                    f"SELECT unit FROM units WHERE is_stable = 0 AND unit IN ({placeholders})", ids
                ).fetchall() if ids else []
            changed = [r[0] for r in rows]
            conn.executemany("UPDATE units SET is_stable = 1 WHERE unit = ?", [(u,) for u in changed])
        return changed

    # --- LedgerClient ---

    async def read_data_feeds(self, address: str, feed_names: Iterable[str]) -> list[StoredFeed]:
        names = list(feed_names)
        if not names:
            return []
        placeholders = ",".join("?" * len(names))
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                f"""SELECT feed_name, value, int_value, is_stable, unit
                FROM data_feeds JOIN units USING(unit)
                WHERE author = ? AND feed_name IN ({placeholders})
                ORDER BY creation_date""",
                [address, *names],
            ).fetchall()
        return [
            StoredFeed(
                feed_name=r["feed_name"],
                value=r["value"] if r["value"] is not None else r["int_value"],
                is_stable=bool(r["is_stable"]),
                unit=r["unit"],
            )
            for r in rows
        ]

    async def read_units(self, address: str) -> list[CapacityUnit]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT amount, is_stable, unit FROM outputs JOIN units USING(unit)
                WHERE address = ? AND is_spent = 0""",
                (address,),
            ).fetchall()
        return [CapacityUnit(r["amount"], bool(r["is_stable"]), r["unit"]) for r in rows]

    async def read_fee_credits(self, address: str) -> int:
        with wal_connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(amount), 0) FROM fee_credits WHERE address = ? AND is_spent = 0",
                (address,),
            ).fetchone()
        return row[0]

    async def stable_units(self, unit_ids: Iterable[str]) -> list[str]:
        ids = list(unit_ids)
        if not ids:
            return []
        placeholders = ",".join("?" * len(ids))
        with wal_connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT unit FROM units WHERE is_stable = 1 AND unit IN ({placeholders})", ids
            ).fetchall()
        return [r[0] for r in rows]

    async def feed_names_in_units(self, unit_ids: Iterable[str]) -> list[str]:
        ids = list(unit_ids)
        if not ids:
            return []
        placeholders = ",".join("?" * len(ids))
        with wal_connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT feed_name FROM data_feeds WHERE unit IN ({placeholders})", ids
            ).fetchall()
        return [r[0] for r in rows]

    async def post_data_feed(self, outputs: list[Output], datafeed: dict[str, FeedValue]) -> str:
        if self._failures:
            raise self._failures.pop(0)("sandbox failure injected")
        if not datafeed:
            raise CompositionError("empty data feed")
        change_outputs = [o for o in outputs if o.amount == 0]
        if len(change_outputs) != 1:
            raise CompositionError("exactly one change output required")
        required = self.fee + sum(o.amount for o in outputs)

        unit = self._new_unit_id()
        try:
            with wal_connect(self.db_path, row_factory=True) as conn:
                candidates = conn.execute(
                    """SELECT output_id, amount FROM outputs JOIN units USING(unit)
                    WHERE address = ? AND is_spent = 0 AND is_stable = 1
                    ORDER BY amount DESC""",
                    (self._address,),
                ).fetchall()
                spent, total = [], 0
                for row in candidates:
                    if total >= required:
                        break
                    spent.append(row["output_id"])
                    total += row["amount"]
                if total < required:
                    raise InsufficientFundsError(f"need {required}, have {total} in stable outputs")

                conn.executemany(
                    "UPDATE outputs SET is_spent = 1 WHERE output_id = ?", [(i,) for i in spent]
                )
                conn.execute(
                    "INSERT INTO units (unit, author, is_stable, creation_date) VALUES (?, ?, 0, ?)",
                    (unit, self._address, utc_timestamp()),
                )
                change = total - required
                new_outputs = [(unit, o.address, o.amount) for o in outputs if o.amount > 0]
                if change > 0:
                    new_outputs.append((unit, change_outputs[0].address, change))
                conn.executemany(
                    "INSERT INTO outputs (unit, address, amount) VALUES (?, ?, ?)", new_outputs
                )
                conn.executemany(
                    "INSERT INTO data_feeds (unit, feed_name, value, int_value) VALUES (?, ?, ?, ?)",
                    [
                        (unit, name, None, value) if isinstance(value, int) else (unit, name, str(value), None)
                        for name, value in datafeed.items()
                    ],
                )
        except sqlite3.Error as e:
            raise LedgerNetworkError(f"sandbox storage error: {e}")

        logger.info("sandbox_unit_posted", unit=unit, feeds=list(datafeed))
        return unit

    @staticmethod
    def _new_unit_id() -> str:
        return uuid.uuid4().hex
