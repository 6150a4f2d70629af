"""Table browser and ad-hoc query console for a project's embedded database.

The inspector is built on a single ``run_statement`` primitive and treats the
database as the source of truth: the table list is rebuilt wholesale on every
refresh and nothing is cached between refreshes.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Protocol

from app.core.events import EventType, WorkspaceEvent
from app.db.sql_runner import StatementOutput
from app.schemas.workspace import ColumnDescriptor, QueryResult, Row, TableDescriptor, TableListing

logger = logging.getLogger(__name__)

EventCallback = Callable[[WorkspaceEvent], Awaitable[None]]

LIST_TABLES_SQL = """
    SELECT name FROM sqlite_master
    WHERE type='table' AND name NOT LIKE 'sqlite_%'
    ORDER BY name
"""

SCHEMA_KEYWORDS = ("create", "drop", "alter")

SAMPLE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS todos (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  description TEXT,
  completed INTEGER DEFAULT 0,
  user_id TEXT NOT NULL,
  created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
  updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

INSERT OR IGNORE INTO todos (id, title, description, user_id) VALUES
('todo_1', 'Build amazing app', 'Create a full-featured application', 'user_demo'),
('todo_2', 'Add authentication', 'Implement user login and registration', 'user_demo'),
('todo_3', 'Deploy to production', 'Make the app available to users', 'user_demo');
""".strip()


class StatementRunner(Protocol):
    async def run_statement(self, sql: str) -> StatementOutput:
        ...


def is_schema_mutating(sql: str) -> bool:
    """Substring heuristic for DDL; a literal containing 'create' also counts."""
    lowered = (sql or "").lower()
    return any(keyword in lowered for keyword in SCHEMA_KEYWORDS)


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def sample_schema_sql() -> str:
    return SAMPLE_SCHEMA_SQL


class SchemaInspector:
    """Owns the displayed table list, the previewed rows and the last query result."""

    def __init__(
        self,
        runner: StatementRunner,
        project_id: str = "",
        row_limit: int = 100,
        on_event: Optional[EventCallback] = None,
    ):
        self.runner = runner
        self.project_id = project_id
        self.row_limit = row_limit
        self.on_event = on_event

        self.tables: List[TableDescriptor] = []
        self.selected_table: Optional[str] = None
        self.table_rows: List[Row] = []
        self.last_result: Optional[QueryResult] = None
        self.error: Optional[str] = None
        self._closed = False

    def close(self) -> None:
        """Make operations still in flight inert when they complete."""
        self._closed = True

    async def _emit(self, event_type: EventType, data: dict) -> None:
        if self.on_event is None or self._closed:
            return
        await self.on_event(WorkspaceEvent.create(event_type, self.project_id, "schema", data))

    async def refresh_tables(self) -> TableListing:
        """Enumerate tables, then fetch columns and a row count for each, one by one."""
        try:
            _, table_rows = await self.runner.run_statement(LIST_TABLES_SQL)
            tables: List[TableDescriptor] = []
            for row in table_rows:
                name = row["name"]
                _, column_rows = await self.runner.run_statement(
                    f"PRAGMA table_info({quote_identifier(name)})"
                )
                columns = [
                    ColumnDescriptor(
                        name=col["name"],
                        type=col["type"] or "",
                        nullable=not col["notnull"],
                        primary_key=bool(col["pk"]),
                    )
                    for col in column_rows
                ]
                _, count_rows = await self.runner.run_statement(
                    f"SELECT COUNT(*) AS count FROM {quote_identifier(name)}"
                )
                row_count = count_rows[0]["count"] if count_rows else 0
                tables.append(TableDescriptor(name=name, columns=columns, row_count=row_count or 0))
        except Exception as e:
            logger.error("Failed to load tables for %s: %s", self.project_id, e)
            listing = TableListing(tables=list(self.tables), error=str(e) or "Failed to load tables")
            if not self._closed:
                self.error = listing.error
            return listing

        listing = TableListing(tables=tables)
        if self._closed:
            return listing

        # Last write wins; a slower earlier refresh may overwrite a newer list
        self.tables = tables
        self.error = None
        logger.info("Refreshed %d tables for %s", len(tables), self.project_id)
        await self._emit(EventType.TABLES_REFRESHED, {"tables": [t.name for t in tables]})
        return listing

    async def load_rows(self, table_name: str) -> QueryResult:
        """Preview at most ``row_limit`` rows of a table."""
        try:
            columns, rows = await self.runner.run_statement(
                f"SELECT * FROM {quote_identifier(table_name)} LIMIT {int(self.row_limit)}"
            )
        except Exception as e:
            logger.error("Failed to load rows of %s: %s", table_name, e)
            result = QueryResult(error=str(e) or "Failed to load table data")
            if not self._closed:
                self.error = result.error
            return result

        result = QueryResult(columns=columns, rows=rows)
        if not self._closed:
            self.selected_table = table_name
            self.table_rows = rows
            self.error = None
        return result

    async def execute(self, sql: str) -> QueryResult:
        """Run arbitrary SQL; refresh the table list when it looks like DDL."""
        if not sql or not sql.strip():
            return QueryResult()

        try:
            columns, rows = await self.runner.run_statement(sql)
        except Exception as e:
            logger.error("Query failed for %s: %s", self.project_id, e)
            result = QueryResult(error=str(e) or "Query execution failed")
            if not self._closed:
                self.error = result.error
            return result

        result = QueryResult(columns=columns, rows=rows)
        if self._closed:
            return result

        self.last_result = result
        self.error = None
        await self._emit(EventType.QUERY_EXECUTED, {"rows": len(rows), "columns": columns})

        if is_schema_mutating(sql):
            listing = await self.refresh_tables()
            result.schema_refreshed = True
            if listing.error:
                result.error = listing.error
        return result
