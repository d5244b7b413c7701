from datetime import datetime, timezone

import pytest

from neet_tutor.models import QuestionInput
from neet_tutor.snapshots import SnapshotStore
from neet_tutor.storage import Storage


class FakeAPIError(Exception):
    pass


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest builder: select/insert/delete, eq, order, execute."""

    def __init__(self, db, table, op, payload=None):
        self.db = db
        self.table = table
        self.op = op
        self.payload = payload
        self.filters = []
        self.order_by = None

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        return all(row.get(col) == val for col, val in self.filters)

    def execute(self):
        self.db.calls.append((self.op, self.table))
        if self.db.fail:
            raise FakeAPIError("connection refused")
        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "select":
            found = [dict(r) for r in rows if self._matches(r)]
            if self.order_by:
                column, desc = self.order_by
                found.sort(key=lambda r: r.get(column) or "", reverse=desc)
            return FakeResponse(found)
        if self.op == "insert":
            if self.db.empty_inserts:
                return FakeResponse([])
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for row in new_rows:
                record = dict(row)
                record["id"] = self.db.next_id(self.table)
                record.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                rows.append(record)
                stored.append(dict(record))
            return FakeResponse(stored)
        if self.op == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResponse(removed)
        raise AssertionError(f"unexpected op {self.op}")


class FakeTable:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def select(self, *columns):
        return FakeQuery(self.db, self.name, "select")

    def insert(self, payload):
        return FakeQuery(self.db, self.name, "insert", payload)

    def delete(self):
        return FakeQuery(self.db, self.name, "delete")


class FakeSupabase:
    """In-memory stand-in for a supabase Client."""

    def __init__(self, tables=None, fail=False, empty_inserts=False, start_id=100):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.fail = fail
        self.empty_inserts = empty_inserts
        self.calls = []
        self._ids = {}
        self._start_id = start_id

    def next_id(self, table):
        existing = [r["id"] for r in self.tables.get(table, [])]
        current = self._ids.get(table, max(existing + [self._start_id - 1]))
        self._ids[table] = current + 1
        return current + 1

    def table(self, name):
        return FakeTable(self, name)


def question_row(id, chapter_id=1, letter="A", subtopic_id=None, created_at="2024-06-01T10:00:00+00:00"):
    return {
        "id": id,
        "chapter_id": chapter_id,
        "subtopic_id": subtopic_id,
        "question": f"Question {id}?",
        "option_a": "alpha",
        "option_b": "beta",
        "option_c": "gamma",
        "option_d": "delta",
        "correct_answer": letter,
        "explanation": None,
        "difficulty": "medium",
        "created_at": created_at,
    }


def make_input(chapter_id=1, letter="C", text="What is the SI unit of force?", **kwargs):
    return QuestionInput(
        question=text,
        option_a="Joule",
        option_b="Newton",
        option_c="Pascal",
        option_d="Watt",
        correct_answer=letter,
        chapter_id=chapter_id,
        **kwargs,
    )


@pytest.fixture
def data_dir(tmp_path):
    """Provide a temporary snapshot directory for tests."""
    return tmp_path / "data"


@pytest.fixture
def fake_client():
    return FakeSupabase()


@pytest.fixture
def storage(data_dir, fake_client):
    """An initialized facade over an empty data dir and a working fake Supabase."""
    s = Storage(SnapshotStore(str(data_dir)), fake_client)
    s.initialize()
    return s


@pytest.fixture
def offline_storage(data_dir):
    """An initialized facade with no remote store configured."""
    s = Storage(SnapshotStore(str(data_dir)), None)
    s.initialize()
    return s
