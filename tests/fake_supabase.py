"""
In-memory stand-in for the supabase-py query builder.

Supports the subset of the PostgREST builder the repositories use:
table().select(cols, count=).eq().or_().order().limit().range(),
insert(), update(), execute().

Store behaviour mirrored from sql/reconciliation_constraints.sql:
- partial unique indexes on `conciliacoes` (status_final = 'conciliado')
  raise APIError code 23505
- `audit_log_vendas` rows get id, created_at and an increasing seq
- a range starting past the last row raises APIError code PGRST103

Writes are serialized with a lock so concurrent callers race the way they
would against a real unique index.
"""

from __future__ import annotations

import copy
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from postgrest.exceptions import APIError

RECONCILED = "conciliado"

# (table, columns, predicate column, predicate value)
UNIQUE_INDEXES: List[Tuple[str, Tuple[str, ...], str, str]] = [
    ("conciliacoes", ("venda_interna_id", "linha_operadora_id"), "status_final", RECONCILED),
    ("conciliacoes", ("venda_interna_id",), "status_final", RECONCILED),
    ("conciliacoes", ("linha_operadora_id",), "status_final", RECONCILED),
]


@dataclass
class FakeResponse:
    data: List[Dict[str, Any]]
    count: Optional[int] = None


def _api_error(code: str, message: str) -> APIError:
    return APIError({"code": code, "message": message, "details": None, "hint": None})


def _sort_value(column: str, value: Any) -> Any:
    if isinstance(value, str) and column.endswith("_at"):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str) -> None:
        self._store = store
        self._table = table
        self._op = "select"
        self._columns = "*"
        self._count: Optional[str] = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._orders: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[Tuple[int, int]] = None
        self._payload: Any = None

    # Builder -------------------------------------------------------------

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._op = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and str(row.get(column)) == str(value))
        return self

    def or_(self, filters: str) -> "FakeQuery":
        clauses = []
        for clause in filters.split(","):
            column, operator, pattern = clause.split(".", 2)
            assert operator == "ilike", f"unsupported operator {operator}"
            clauses.append((column, pattern.strip("%").lower()))

        def matches(row: Dict[str, Any]) -> bool:
            return any(term in str(row.get(column) or "").lower() for column, term in clauses)

        self._filters.append(matches)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    # Execution -----------------------------------------------------------

    def execute(self) -> FakeResponse:
        self._store.calls.append((self._table, self._op))
        failure = self._store.failures.get((self._table, self._op))
        if failure is not None:
            raise failure

        with self._store.lock:
            if self._op == "insert":
                return self._execute_insert()
            if self._op == "update":
                return self._execute_update()
            return self._execute_select()

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self._store.tables[self._table] if all(f(row) for f in self._filters)]

    def _execute_select(self) -> FakeResponse:
        rows = self._matching()
        for column, desc in reversed(self._orders):
            rows.sort(
                key=lambda row: (row.get(column) is None, _sort_value(column, row.get(column))),
                reverse=desc,
            )
        total = len(rows)

        if self._range is not None:
            start, end = self._range
            if start > 0 and start >= total:
                raise _api_error("PGRST103", "Requested range not satisfiable")
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[: self._limit]

        rows = [self._store.embed(self._table, self._columns, copy.deepcopy(row)) for row in rows]
        return FakeResponse(data=rows, count=total if self._count == "exact" else None)

    def _execute_insert(self) -> FakeResponse:
        payloads = self._payload if isinstance(self._payload, list) else [self._payload]
        table = self._store.tables[self._table]

        prepared = [self._store.with_defaults(self._table, dict(p)) for p in payloads]
        candidate = table + prepared
        self._store.check_unique(self._table, candidate)

        table.extend(prepared)
        return FakeResponse(data=copy.deepcopy(prepared))

    def _execute_update(self) -> FakeResponse:
        targets = self._matching()
        updated = [{**row, **self._payload} for row in targets]

        remaining = [row for row in self._store.tables[self._table] if all(row is not t for t in targets)]
        self._store.check_unique(self._table, remaining + updated)

        for row, new_row in zip(targets, updated):
            row.update(new_row)
        return FakeResponse(data=copy.deepcopy(targets))


class FakeSupabase:
    """Minimal Supabase client double holding tables as lists of dicts."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.lock = threading.RLock()
        self._seq = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    # Test helpers --------------------------------------------------------

    def seed(self, table: str, *rows: Dict[str, Any]) -> None:
        self.tables[table].extend(dict(row) for row in rows)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return list(self.tables[table])

    def fail(self, table: str, op: str, code: str = "XX000", message: str = "simulated failure") -> None:
        self.failures[(table, op)] = _api_error(code, message)

    # Store behaviour -----------------------------------------------------

    def with_defaults(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        if table == "audit_log_vendas":
            self._seq += 1
            row["seq"] = self._seq
        return row

    def check_unique(self, table: str, rows: List[Dict[str, Any]]) -> None:
        for index_table, columns, where_column, where_value in UNIQUE_INDEXES:
            if index_table != table:
                continue
            seen = set()
            for row in rows:
                if row.get(where_column) != where_value:
                    continue
                key = tuple(row.get(c) for c in columns)
                if key in seen:
                    raise _api_error(
                        "23505",
                        f"duplicate key value violates unique constraint on {table} {columns}",
                    )
                seen.add(key)

    def embed(self, table: str, columns: str, row: Dict[str, Any]) -> Dict[str, Any]:
        if table == "vendas_internas" and "usuario:usuarios(nome)" in columns:
            seller = next(
                (u for u in self.tables["usuarios"] if u.get("id") == row.get("usuario_id")),
                None,
            )
            row["usuario"] = {"nome": seller.get("nome")} if seller else None
        return row


# Row factories ---------------------------------------------------------------


def _value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def sale_row(**overrides: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": str(uuid4()),
        "usuario_id": str(uuid4()),
        "cliente_nome": "Maria Silva",
        "data_venda": "2024-01-10",
        "status_interno": "nova",
        "empresa_id": None,
        "operadora_id": None,
        "protocolo_interno": "01234567",
        "cpf_cnpj": "123.456.789-00",
        "telefone": "11999990000",
        "identificador_make": "MK-1001",
        "valor": "99.90",
        "observacoes": None,
        "created_at": "2024-01-10T12:00:00+00:00",
        "updated_at": "2024-01-10T12:00:00+00:00",
    }
    row.update({key: _value(value) for key, value in overrides.items()})
    return row


def carrier_row(**overrides: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": str(uuid4()),
        "operadora": "Vivo",
        "status_operadora": "aprovado",
        "protocolo_operadora": "01234567",
        "cpf_cnpj": "123.456.789-00",
        "cliente_nome": "Maria Silva",
        "telefone": "11999990000",
        "plano": "Fibra 500",
        "valor": "99.90",
        "valor_lq": None,
        "quinzena_ref": "2024-01-Q1",
        "arquivo_origem": "vivo_jan.xlsx",
        "created_at": "2024-01-20T12:00:00+00:00",
        "updated_at": "2024-01-20T12:00:00+00:00",
    }
    row.update({key: _value(value) for key, value in overrides.items()})
    return row


__all__ = ["FakeSupabase", "FakeResponse", "sale_row", "carrier_row"]
