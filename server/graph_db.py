"""SQLite storage for graph documents."""

import json
import os
import sqlite3
from pathlib import Path
from typing import Any

from choicegraph.adapters.storage import GraphStorage
from choicegraph.utils.identifiers import utc_timestamp

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "choicegraph.db"
GRAPH_DB_PATH = Path(os.getenv("GRAPH_DB_PATH", str(DEFAULT_DB_PATH)))


def _connect() -> sqlite3.Connection:
    GRAPH_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(GRAPH_DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.execute(
            """
            create table if not exists graphs (
                graph_id text primary key,
                graph_json text not null,
                name text not null,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.commit()


def upsert_graph(graph_id: str, document: dict[str, Any]) -> None:
    """insert or update a graph document."""
    now = utc_timestamp()
    with _connect() as conn:
        conn.execute(
            """
            insert into graphs (graph_id, graph_json, name, created_at, updated_at)
            values (?, ?, ?, ?, ?)
            on conflict(graph_id) do update set
                graph_json = excluded.graph_json,
                name = excluded.name,
                updated_at = excluded.updated_at
            """,
            (
                graph_id,
                json.dumps(document),
                str(document.get("name") or ""),
                str(document.get("createdAt") or now),
                str(document.get("updatedAt") or now),
            ),
        )
        conn.commit()


def get_graph(graph_id: str) -> dict[str, Any] | None:
    with _connect() as conn:
        row = conn.execute(
            "select graph_json from graphs where graph_id = ?",
            (graph_id,),
        ).fetchone()
    if not row:
        return None
    return json.loads(row["graph_json"])


def graph_exists(graph_id: str) -> bool:
    with _connect() as conn:
        row = conn.execute(
            "select 1 from graphs where graph_id = ?",
            (graph_id,),
        ).fetchone()
    return row is not None


def list_graphs() -> list[dict[str, Any]]:
    with _connect() as conn:
        rows = conn.execute(
            "select graph_json from graphs order by updated_at desc"
        ).fetchall()
    return [json.loads(row["graph_json"]) for row in rows]


def delete_graph(graph_id: str) -> None:
    with _connect() as conn:
        conn.execute("delete from graphs where graph_id = ?", (graph_id,))
        conn.commit()


class SqliteGraphStorage(GraphStorage):
    """GraphStorage backed by the graphs table."""

    def read(self, graph_id: str) -> dict[str, Any] | None:
        return get_graph(graph_id)

    def write(self, graph_id: str, document: dict[str, Any]) -> None:
        upsert_graph(graph_id, document)

    def exists(self, graph_id: str) -> bool:
        return graph_exists(graph_id)

    def list_documents(self) -> list[dict[str, Any]]:
        return list_graphs()

    def delete(self, graph_id: str) -> None:
        delete_graph(graph_id)
