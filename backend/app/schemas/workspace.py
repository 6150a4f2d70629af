"""Pydantic schemas for the conversation, workspace tree and database browser."""

from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator


Role = Literal["user", "assistant"]
ArtifactKind = Literal["code", "markup"]
NodeType = Literal["file", "directory"]
CollisionPolicy = Literal["last_wins", "first_wins", "auto_suffix"]

# A database cell as the browser sees it
CellValue = Union[str, int, float, bool, None]
Row = Dict[str, CellValue]


# ── Conversation ─────────────────────────────────────────────────────


class User(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None


class AuthState(BaseModel):
    user: Optional[User] = None
    is_loading: bool = False


class ConversationMessage(BaseModel):
    """One turn of a project's conversation."""
    id: str
    role: Role
    content: str
    timestamp: int = Field(description="Epoch milliseconds")
    project_id: str
    user_id: str
    is_streaming: bool = False

    def to_context(self) -> dict:
        """Reduce to the fields the inference endpoint receives."""
        return {"role": self.role, "content": self.content}


class InferenceResponse(BaseModel):
    response: str = ""
    html: Optional[str] = None
    error: Optional[str] = None


# ── Artifacts ────────────────────────────────────────────────────────


class Artifact(BaseModel):
    """A code or markup unit extracted from an assistant response."""
    kind: ArtifactKind
    language: str
    body: str
    name: str


# ── Workspace tree ───────────────────────────────────────────────────


class FileNode(BaseModel):
    name: str
    path: str
    type: NodeType
    children: Optional[List["FileNode"]] = None
    content: Optional[str] = None
    language: Optional[str] = None

    @model_validator(mode="after")
    def _check_variant(self) -> "FileNode":
        if self.type == "directory":
            if self.content is not None or self.language is not None:
                raise ValueError(f"directory {self.path!r} cannot carry content")
            if self.children is None:
                self.children = []
        elif self.children is not None:
            raise ValueError(f"file {self.path!r} cannot carry children")
        return self


FileNode.model_rebuild()


class WorkspaceViewState(BaseModel):
    open_tabs: List[str] = Field(default_factory=list)
    active_path: Optional[str] = None
    expanded_directories: List[str] = Field(default_factory=list)
    buffered_content: Dict[str, str] = Field(default_factory=dict)
    dirty_paths: List[str] = Field(default_factory=list)


# ── Database browser ─────────────────────────────────────────────────


class ColumnDescriptor(BaseModel):
    name: str
    type: str
    nullable: bool
    primary_key: bool


class TableDescriptor(BaseModel):
    name: str
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    row_count: int = 0


class TableListing(BaseModel):
    tables: List[TableDescriptor] = Field(default_factory=list)
    error: Optional[str] = None


class QueryResult(BaseModel):
    """Rows keyed by column name; `columns` keeps the statement's column order."""
    columns: List[str] = Field(default_factory=list)
    rows: List[Row] = Field(default_factory=list)
    error: Optional[str] = None
    schema_refreshed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
