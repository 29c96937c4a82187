"""Shared test doubles: a recording Supabase client and Qt app bootstrap."""

from types import SimpleNamespace


def qt_app():
    from PySide6.QtCore import QCoreApplication
    return QCoreApplication.instance() or QCoreApplication([])


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder.

    Records the call chain and, on ``execute()``, applies it to the owning
    table's in-memory rows.
    """

    def __init__(self, table):
        self._table = table
        self.op = None
        self.payload = None
        self.filters = []
        self.order_by = None
        self.columns = None

    def select(self, columns="*"):
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, row):
        self.op = "insert"
        self.payload = row
        return self

    def update(self, fields):
        self.op = "update"
        self.payload = fields
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        return all(row.get(c) == v for c, v in self.filters)

    def execute(self):
        client = self._table.client
        client.calls.append(self)
        failure = client.fail_on.get((self._table.name, self.op))
        if failure is not None and failure(self):
            raise RuntimeError(f"simulated {self.op} failure on {self._table.name}")

        rows = self._table.rows
        if self.op == "select":
            data = [dict(r) for r in rows if self._matches(r)]
            if self.order_by:
                column, desc = self.order_by
                data.sort(key=lambda r: r.get(column) or "", reverse=desc)
            return SimpleNamespace(data=data, count=None)
        if self.op == "insert":
            rows.append(dict(self.payload))
            return SimpleNamespace(data=[dict(self.payload)], count=None)
        if self.op == "update":
            hit = [r for r in rows if self._matches(r)]
            for r in hit:
                r.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in hit], count=None)
        if self.op == "delete":
            hit = [r for r in rows if self._matches(r)]
            self._table.rows[:] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=hit, count=None)
        raise AssertionError(f"execute() without an operation on {self._table.name}")


class FakeTable:

    def __init__(self, client, name):
        self.client = client
        self.name = name
        self.rows = []

    def query(self):
        return FakeQuery(self)


class FakeSupabase:
    """Just enough of ``supabase.Client`` for the repositories."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        # (table, op) -> predicate(query) returning True when that call should raise
        self.fail_on = {}

    def table(self, name):
        if name not in self.tables:
            self.tables[name] = FakeTable(self, name)
        return self.tables[name].query()

    def rows(self, name):
        return self.tables[name].rows if name in self.tables else []

    def writes(self, name=None):
        return [c for c in self.calls if c.op != "select" and (name is None or c._table.name == name)]


class FakeClock:
    """Integer millisecond clock the tests move by hand."""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds=0, ms=0):
        self.now += seconds * 1000 + ms
        return self.now
