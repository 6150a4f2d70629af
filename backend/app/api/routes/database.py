"""Database browser routes. Engine failures come back as an `error` field, not an HTTP error."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import get_workspace
from app.schemas.workspace import QueryResult, TableListing
from app.services.schema_inspector import sample_schema_sql
from app.services.workspace import Workspace

router = APIRouter(prefix="/projects/{project_id}/database", tags=["database"])


class QueryRequest(BaseModel):
    sql: str


@router.get("/tables", response_model=TableListing)
async def list_tables(workspace: Workspace = Depends(get_workspace)):
    """Re-enumerate tables, columns and row counts."""
    return await workspace.inspector.refresh_tables()


@router.get("/tables/{table_name}/rows", response_model=QueryResult)
async def table_rows(table_name: str, workspace: Workspace = Depends(get_workspace)):
    return await workspace.inspector.load_rows(table_name)


@router.post("/query", response_model=QueryResult)
async def run_query(body: QueryRequest, workspace: Workspace = Depends(get_workspace)):
    return await workspace.inspector.execute(body.sql)


@router.get("/sample")
async def sample_sql():
    """Starter script creating a small todos table."""
    return {"sql": sample_schema_sql()}
