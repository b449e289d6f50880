"""SQLiteStore — local file-based check history.

Schema:
  checks  — one row per evaluated commit; violations are kept as a JSON
            column so read paths need no JOIN.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from policylens_store.base import BaseStore
from policylens_store.models import CheckRecord, ViolationRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS checks (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    repo            TEXT NOT NULL,
    ref             TEXT,
    subject         TEXT,
    branch          TEXT,
    checked_at      TEXT,
    passed          INTEGER NOT NULL,
    violations_json TEXT DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_checks_repo   ON checks (repo);
CREATE INDEX IF NOT EXISTS idx_checks_branch ON checks (repo, branch);
"""


class SQLiteStore(BaseStore):
    """Stores check history in a local SQLite database file.

    Defaults to `.policylens.db` in the working directory; configure with
    `store_path` in .policylens.yml.
    """

    def __init__(self, db_path: str = ".policylens.db"):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def save(self, record: CheckRecord) -> None:
        violations_json = json.dumps(
            [{"rule_id": v.rule_id, "severity": v.severity, "message": v.message} for v in record.violations]
        )
        self._conn.execute(
            """
            INSERT INTO checks (repo, ref, subject, branch, checked_at, passed, violations_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.repo,
                record.ref,
                record.subject,
                record.branch,
                record.checked_at,
                int(record.passed),
                violations_json,
            ),
        )
        self._conn.commit()

    def list_records(self, repo: str, branch: str | None = None) -> list[CheckRecord]:
        if branch is not None:
            rows = self._conn.execute(
                "SELECT * FROM checks WHERE repo=? AND branch=? ORDER BY checked_at, id",
                (repo, branch),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM checks WHERE repo=? ORDER BY checked_at, id",
                (repo,),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CheckRecord:
        violations = [
            ViolationRecord(
                rule_id=v.get("rule_id", ""),
                severity=v.get("severity", "blocking"),
                message=v.get("message", ""),
            )
            for v in json.loads(row["violations_json"] or "[]")
        ]
        return CheckRecord(
            repo=row["repo"],
            ref=row["ref"] or "",
            subject=row["subject"] or "",
            branch=row["branch"],
            checked_at=row["checked_at"] or "",
            passed=bool(row["passed"]),
            violations=violations,
        )
