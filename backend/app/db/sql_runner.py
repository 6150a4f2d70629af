"""Raw statement execution against a project's embedded SQLite database."""

import re
import sqlite3
from typing import List, Tuple

import databases

from app.schemas.workspace import Row

StatementOutput = Tuple[List[str], List[Row]]

_COMMENT_RE = re.compile(r"--[^\n]*|/\*.*?(?:\*/|$)", re.DOTALL)


def split_statements(sql: str) -> List[str]:
    """Split a script into complete statements, respecting quotes and comments."""
    statements: List[str] = []
    buffer = ""
    for char in sql:
        buffer += char
        if char == ";" and sqlite3.complete_statement(buffer):
            if _has_code(buffer):
                statements.append(buffer.strip())
            buffer = ""
    if _has_code(buffer):
        statements.append(buffer.strip())
    return statements


def _has_code(fragment: str) -> bool:
    """False for fragments holding nothing but comments, whitespace and semicolons."""
    return bool(_COMMENT_RE.sub("", fragment).strip(" \t\r\n;"))


def _cell(value):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


class DatabaseStatementRunner:
    """Runs arbitrary SQL text; the output of the last statement is returned."""

    def __init__(self, database: databases.Database):
        self.database = database

    async def run_statement(self, sql: str) -> StatementOutput:
        if not self.database.is_connected:
            await self.database.connect()

        columns: List[str] = []
        rows: List[Row] = []
        async with self.database.connection() as connection:
            raw = connection.raw_connection
            for statement in split_statements(sql):
                cursor = await raw.execute(statement)
                try:
                    fetched = await cursor.fetchall()
                    columns = [d[0] for d in cursor.description] if cursor.description else []
                finally:
                    await cursor.close()
                rows = [dict(zip(columns, (_cell(v) for v in record))) for record in fetched]
            await raw.commit()
        return columns, rows
