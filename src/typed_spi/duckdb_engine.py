"""Engine adapter for a DuckDB database running in the current process."""

from __future__ import annotations

import functools
import json
import logging
import re
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Sequence

import duckdb

from typed_spi.config import EngineConfig
from typed_spi.datum import Datum
from typed_spi.engine import Column, TupleTable
from typed_spi.errors import FrameError, StatementError
from typed_spi.oids import BuiltinOid, oid_for_value
from typed_spi.parsing.sql_lexer import (
    has_keyword,
    leading_keyword,
    placeholder_count,
    rewrite_placeholders,
    statement_words,
)
from typed_spi.statement import Binding

logger = logging.getLogger(__name__)

# Declared argument type -> DuckDB type used to cast the placeholder
CAST_TYPES: dict[BuiltinOid, str] = {
    BuiltinOid.BOOL: "BOOLEAN",
    BuiltinOid.BYTEA: "BLOB",
    BuiltinOid.INT8: "BIGINT",
    BuiltinOid.INT2: "SMALLINT",
    BuiltinOid.INT4: "INTEGER",
    BuiltinOid.TEXT: "VARCHAR",
    BuiltinOid.JSON: "JSON",
    BuiltinOid.FLOAT4: "FLOAT",
    BuiltinOid.FLOAT8: "DOUBLE",
    BuiltinOid.VARCHAR: "VARCHAR",
    BuiltinOid.DATE: "DATE",
    BuiltinOid.TIMESTAMP: "TIMESTAMP",
    BuiltinOid.TIMESTAMPTZ: "TIMESTAMPTZ",
    BuiltinOid.NUMERIC: "DECIMAL(38, 10)",
    BuiltinOid.UUID: "UUID",
    BuiltinOid.JSONB: "JSON",
}

# DuckDB column type name -> tag. Names missing here fall back to the value's type.
RESULT_OIDS: dict[str, BuiltinOid] = {
    "BOOLEAN": BuiltinOid.BOOL,
    "BOOL": BuiltinOid.BOOL,
    "TINYINT": BuiltinOid.INT2,
    "UTINYINT": BuiltinOid.INT2,
    "SMALLINT": BuiltinOid.INT2,
    "USMALLINT": BuiltinOid.INT4,
    "INTEGER": BuiltinOid.INT4,
    "UINTEGER": BuiltinOid.INT8,
    "BIGINT": BuiltinOid.INT8,
    "UBIGINT": BuiltinOid.NUMERIC,
    "HUGEINT": BuiltinOid.NUMERIC,
    "UHUGEINT": BuiltinOid.NUMERIC,
    "DECIMAL": BuiltinOid.NUMERIC,
    "FLOAT": BuiltinOid.FLOAT4,
    "DOUBLE": BuiltinOid.FLOAT8,
    "VARCHAR": BuiltinOid.TEXT,
    "STRING": BuiltinOid.TEXT,
    "BLOB": BuiltinOid.BYTEA,
    "DATE": BuiltinOid.DATE,
    "TIMESTAMP": BuiltinOid.TIMESTAMP,
    "TIMESTAMP WITH TIME ZONE": BuiltinOid.TIMESTAMPTZ,
    "UUID": BuiltinOid.UUID,
    "JSON": BuiltinOid.JSON,
}

# Statements rejected when the caller asked for read-only execution
WRITE_COMMANDS = frozenset({
    "insert", "update", "delete", "merge", "upsert",
    "create", "drop", "alter", "truncate",
    "copy", "import", "export", "attach", "detach",
    "install", "load", "checkpoint", "vacuum",
})

DML_COMMANDS = frozenset({"insert", "update", "delete"})

ESTIMATED_CARDINALITY = "Estimated Cardinality"


def column_oid(type_code: Any) -> BuiltinOid | None:
    """Map a DuckDB column type (as reported in ``description``) to a tag."""
    if type_code is None:
        return None
    name = str(type_code).upper()
    paren = name.find("(")
    if paren >= 0:
        name = name[:paren]
    return RESULT_OIDS.get(name.strip())


def _engine_value(binding: Binding) -> Any:
    """Convert an encoded binding value to what the DuckDB client accepts."""
    value = binding.value
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _sql_literal(binding: Binding) -> str:
    """Render a binding as a typed SQL literal, for plan-only statements."""
    cast = CAST_TYPES[binding.oid]
    value = _engine_value(binding)
    if value is None:
        return f"CAST(NULL AS {cast})"
    if isinstance(value, bool):
        return f"CAST({'TRUE' if value else 'FALSE'} AS {cast})"
    if isinstance(value, bytes):
        text = "".join(f"\\x{b:02X}" for b in value)
    else:
        text = str(value)
    quoted = "'" + text.replace("'", "''") + "'"
    return f"CAST({quoted} AS {cast})"


def _estimated_rows(extra: dict[str, Any]) -> int:
    raw = extra.get(ESTIMATED_CARDINALITY)
    if raw is None:
        return 0
    digits = re.sub(r"\D", "", str(raw))
    return int(digits) if digits else 0


def normalize_plan_node(node: dict[str, Any]) -> dict[str, Any]:
    """Rewrite one DuckDB JSON plan node into the engine plan shape.

    DuckDB reports an operator name, a cardinality estimate and free-form
    extra info. It has no cost, width or parallel-awareness estimates, so
    those are reported as zero and false.
    """
    extra = node.get("extra_info") or {}
    if not isinstance(extra, dict):
        extra = {}
    plan: dict[str, Any] = {
        "Node Type": str(node.get("name", "")).strip(),
        "Parallel Aware": False,
        "Plan Rows": _estimated_rows(extra),
        "Plan Width": 0,
        "Startup Cost": 0.0,
        "Total Cost": 0.0,
    }
    others = {k: v for k, v in extra.items() if k != ESTIMATED_CARDINALITY}
    if others:
        plan["Extra Info"] = others
    children = [normalize_plan_node(child) for child in node.get("children") or []]
    if children:
        plan["Plans"] = children
    return plan


def normalize_plan(tree: Any) -> list[dict[str, Any]]:
    """Wrap DuckDB's plan tree as ``[{"Plan": {...}}, ...]``."""
    nodes = tree if isinstance(tree, list) else [tree]
    return [{"Plan": normalize_plan_node(node)} for node in nodes]


def _check_arity(sql: str, bindings: Sequence[Binding]) -> None:
    expected = placeholder_count(sql)
    if expected != len(bindings):
        raise StatementError(
            f"statement expects {expected} argument(s) but {len(bindings)} were bound"
        )


def write_command(sql: str) -> str | None:
    """Return the first data-modifying command among the ``;``-separated statements."""
    for words in statement_words(sql):
        if words[0] in WRITE_COMMANDS:
            return words[0]
        # WITH ... INSERT/UPDATE/DELETE
        if words[0] == "with":
            for word in words:
                if word in DML_COMMANDS:
                    return word
    return None


class DuckDBConnection:
    """The single connection resource handed to the outermost frame.

    A statement issued while another is still running on this connection
    (from a registered function called by that statement) runs on a cursor
    of the same database.
    """

    def __init__(self, engine: DuckDBEngine, con: duckdb.DuckDBPyConnection) -> None:
        self._engine = engine
        self._con = con
        self._executing = 0
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise FrameError("engine connection has been released")

    @contextmanager
    def _handle(self) -> Iterator[duckdb.DuckDBPyConnection]:
        if self._executing:
            con = self._con.cursor()
        else:
            con = self._con
            self._engine._host_failure = None
        self._executing += 1
        try:
            yield con
        except duckdb.Error as e:
            failure = self._engine._take_host_failure()
            if failure is not None:
                raise failure
            raise StatementError(str(e)) from e
        finally:
            self._executing -= 1
            if con is not self._con:
                con.close()

    def execute(
        self,
        sql: str,
        bindings: Sequence[Binding],
        read_only: bool,
        limit: int | None = None,
    ) -> TupleTable:
        """Run one statement and return its tagged rows.

        Args:
            sql: Statement text using ``$1``..``$n`` placeholders.
            bindings: One binding per placeholder, in order.
            read_only: Reject data-modifying statements.
            limit: Fetch at most this many rows; None or 0 fetches all.

        A failure raised by a registered function while the statement runs
        is re-raised as itself, not as a StatementError.
        """
        self._check_open()
        if read_only:
            blocked = write_command(sql)
            if blocked is not None:
                raise StatementError(f"{blocked.upper()} is not allowed in a read-only statement")
        _check_arity(sql, bindings)
        command = leading_keyword(sql)

        if bindings:
            text = rewrite_placeholders(
                sql, lambda n: f"CAST(${n} AS {CAST_TYPES[bindings[n - 1].oid]})"
            )
            params = [_engine_value(b) for b in bindings]
        else:
            text, params = sql, []

        logger.debug("executing %r with %d argument(s)", text, len(params))
        with self._handle() as con:
            if params:
                con.execute(text, params)
            else:
                con.execute(text)
            description = con.description
            if not description:
                raw_rows: list[tuple[Any, ...]] = []
            elif limit:
                raw_rows = con.fetchmany(limit)
            else:
                raw_rows = con.fetchall()

        description = description or []
        if (
            command in DML_COMMANDS
            and not has_keyword(sql, "returning")
            and len(description) == 1
            and len(raw_rows) == 1
        ):
            # DuckDB answers INSERT/UPDATE/DELETE with a single "Count" row
            return TupleTable(processed=int(raw_rows[0][0]))

        columns = []
        for entry in description:
            oid = column_oid(entry[1])
            columns.append(Column(
                name=str(entry[0]),
                oid=int(oid) if oid is not None else int(BuiltinOid.UNKNOWN),
                type_name=str(entry[1]),
            ))
        known = [column_oid(entry[1]) for entry in description]
        rows = [
            tuple(
                Datum(int(tag) if tag is not None else int(oid_for_value(value)), value)
                for tag, value in zip(known, raw)
            )
            for raw in raw_rows
        ]
        return TupleTable(columns=columns, rows=rows, processed=len(rows))

    def explain(self, sql: str, bindings: Sequence[Binding]) -> str:
        """Plan the statement without running it and return the JSON plan text."""
        self._check_open()
        _check_arity(sql, bindings)
        text = rewrite_placeholders(sql, lambda n: _sql_literal(bindings[n - 1]))
        logger.debug("explaining %r", text)
        with self._handle() as con:
            rows = con.execute(f"EXPLAIN (FORMAT JSON) {text}").fetchall()
        if not rows:
            raise StatementError("engine returned no plan")
        plan_text = rows[-1][-1]
        for row in rows:
            if row[0] == "physical_plan":
                plan_text = row[-1]
        return json.dumps(normalize_plan(json.loads(plan_text)))

    def register_function(
        self,
        name: str,
        func: Callable[..., Any],
        parameters: list[Any] | None = None,
        return_type: Any = None,
        **kwargs: Any,
    ) -> None:
        """Expose a Python callable to SQL under ``name``."""
        self._check_open()
        self._engine.register_function(name, func, parameters, return_type, **kwargs)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._engine._release(self)


class DuckDBEngine:
    """A DuckDB database living in this process.

    Wraps an existing ``duckdb`` connection when one is given, otherwise opens
    one from ``config``. Only one frame stack may hold the connection at a time.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        connection: duckdb.DuckDBPyConnection | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        if connection is not None:
            self._con = connection
            self._owns_connection = False
        else:
            self._con = duckdb.connect(
                database=self.config.database,
                read_only=self.config.read_only,
                config=dict(self.config.settings),
            )
            self._owns_connection = True
        self._active: DuckDBConnection | None = None
        self._host_failure: Exception | None = None
        self.closed = False

    @property
    def raw_connection(self) -> duckdb.DuckDBPyConnection:
        return self._con

    @property
    def in_use(self) -> bool:
        return self._active is not None

    def connect(self) -> DuckDBConnection:
        if self.closed:
            raise FrameError("engine has been closed")
        if self._active is not None:
            raise FrameError("engine connection is already held by another frame")
        self._active = DuckDBConnection(self, self._con)
        logger.debug("engine connection acquired")
        return self._active

    def _release(self, connection: DuckDBConnection) -> None:
        if self._active is connection:
            self._active = None
            logger.debug("engine connection released")

    def _take_host_failure(self) -> Exception | None:
        failure, self._host_failure = self._host_failure, None
        return failure

    def register_function(
        self,
        name: str,
        func: Callable[..., Any],
        parameters: list[Any] | None = None,
        return_type: Any = None,
        **kwargs: Any,
    ) -> None:
        """Expose a Python callable to SQL under ``name``.

        An exception raised by ``func`` aborts the calling statement and is
        re-raised unchanged from ``DuckDBConnection.execute``.
        """
        if self.closed:
            raise FrameError("engine has been closed")

        @functools.wraps(func)
        def call(*args: Any, **kw: Any) -> Any:
            try:
                return func(*args, **kw)
            except Exception as e:
                self._host_failure = e
                raise

        try:
            self._con.create_function(name, call, parameters, return_type, **kwargs)
        except duckdb.Error as e:
            raise StatementError(str(e)) from e

    def close(self) -> None:
        if self.closed:
            return
        if self._active is not None:
            raise FrameError("cannot close the engine while a frame holds its connection")
        self.closed = True
        if self._owns_connection:
            self._con.close()

    def __enter__(self) -> DuckDBEngine:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
