"""Per-project workspace: wires conversation replies into the tree and the schema browser.

The conversation engine, the tree and the schema inspector never call each
other. The workspace receives the engine's reply text, turns it into
artifacts and applies them as file writes, and asks the inspector for a
refresh when generated SQL looks like DDL.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

import databases

from app.agents.base import InferenceAgent
from app.core import config
from app.core.events import EventType, WorkspaceEvent
from app.db.sql_runner import DatabaseStatementRunner
from app.schemas.workspace import Artifact, FileNode
from app.services.artifact_extractor import extract, find_collisions, resolve_collisions
from app.services.auth import AuthSession
from app.services.conversation import ConversationEngine, StagedPrompt
from app.services.message_store import MessageStore
from app.services.schema_inspector import SchemaInspector, StatementRunner, is_schema_mutating
from app.services.workspace_tree import WorkspaceTree, WorkspaceView, language_for_tag

logger = logging.getLogger(__name__)

EventCallback = Callable[[WorkspaceEvent], Awaitable[None]]

STARTER_FILES = {
    "src/App.tsx": """import React from 'react'
import './App.css'

function App() {
  return (
    <div className="min-h-screen bg-gray-900 text-white">
      <div className="container mx-auto px-4 py-8">
        <h1 className="text-4xl font-bold mb-8">Welcome</h1>
        <p className="text-xl text-gray-300">
          Your AI-powered development platform is ready!
        </p>
      </div>
    </div>
  )
}

export default App""",
    "src/main.tsx": """import React from 'react'
import ReactDOM from 'react-dom/client'
import App from './App'
import './index.css'

ReactDOM.createRoot(document.getElementById('root')!).render(
  <React.StrictMode>
    <App />
  </React.StrictMode>,
)""",
    "src/index.css": """@tailwind base;
@tailwind components;
@tailwind utilities;

body {
  margin: 0;
  -webkit-font-smoothing: antialiased;
  -moz-osx-font-smoothing: grayscale;
}""",
    "package.json": """{
  "name": "workspace-project",
  "private": true,
  "version": "0.0.0",
  "type": "module",
  "scripts": {
    "dev": "vite",
    "build": "tsc && vite build",
    "preview": "vite preview"
  },
  "dependencies": {
    "react": "^18.2.0",
    "react-dom": "^18.2.0"
  }
}""",
}


def starter_tree() -> WorkspaceTree:
    """The scaffold every new project starts from."""
    tree = WorkspaceTree()
    for path, content in STARTER_FILES.items():
        tree.upsert_file(path, content)
    return tree


class Workspace:
    """One project's chat log, file tree, editor view and database browser."""

    def __init__(
        self,
        project_id: str,
        auth: AuthSession,
        store: MessageStore,
        agent: InferenceAgent,
        runner: StatementRunner,
        on_event: Optional[EventCallback] = None,
        staged: Optional[StagedPrompt] = None,
        nodes: Optional[Iterable[FileNode]] = None,
        expanded: Optional[Iterable[str]] = None,
        collision_policy: str = "last_wins",
        context_window: int = 5,
        history_limit: int = 100,
        row_limit: int = 100,
    ):
        self.project_id = project_id
        self.on_event = on_event
        self.collision_policy = collision_policy

        self.tree = WorkspaceTree(nodes) if nodes is not None else starter_tree()
        self.view = WorkspaceView(self.tree, expanded if expanded is not None else ["src"])
        self.conversation = ConversationEngine(
            project_id,
            auth,
            store,
            agent,
            on_event=self._publish,
            on_response=self.apply_response,
            staged=staged,
            context_window=context_window,
            history_limit=history_limit,
        )
        self.inspector = SchemaInspector(runner, project_id, row_limit, on_event=self._publish)
        self.last_artifacts: List[Artifact] = []

    async def mount(self) -> None:
        self.view.auto_open()
        await self.conversation.mount()
        await self.inspector.refresh_tables()

    def unmount(self) -> None:
        self.conversation.unmount()
        self.inspector.close()

    async def _publish(self, event: WorkspaceEvent) -> None:
        if self.on_event is not None:
            await self.on_event(event)

    async def apply_response(self, response_text: str, html: Optional[str] = None) -> List[Artifact]:
        """Extract artifacts from a reply and write them into the tree."""
        artifacts = extract(response_text, html)
        collisions = find_collisions(artifacts)
        if collisions:
            logger.info(
                "Artifact names collide in %s: %s (policy: %s)",
                self.project_id, collisions, self.collision_policy,
            )
        resolved = resolve_collisions(artifacts, self.collision_policy)

        written: List[Artifact] = []
        for artifact in resolved:
            await self._publish(
                WorkspaceEvent.create(
                    EventType.ARTIFACT_EXTRACTED,
                    self.project_id,
                    "workspace",
                    {"name": artifact.name, "kind": artifact.kind, "language": artifact.language},
                )
            )
            if self.write_artifact(artifact):
                written.append(artifact)
                await self._publish(
                    WorkspaceEvent.create(
                        EventType.FILE_WRITTEN, self.project_id, "workspace", {"path": artifact.name}
                    )
                )

        self.last_artifacts = written
        if written:
            logger.info("Wrote %d artifacts to %s", len(written), self.project_id)

        if any(a.language.lower() == "sql" and is_schema_mutating(a.body) for a in written):
            await self.inspector.refresh_tables()
        return written

    def write_artifact(self, artifact: Artifact) -> bool:
        existing = self.tree.find(artifact.name)
        previous = existing.content if existing is not None else None
        try:
            self.tree.upsert_file(
                artifact.name,
                artifact.body,
                language_for_tag(artifact.language, artifact.name),
            )
        except ValueError as e:
            logger.warning("Skipping artifact %s: %s", artifact.name, e)
            return False
        self.view.sync_written_file(artifact.name, previous)
        return True


class WorkspaceRegistry:
    """In-process workspaces keyed by project id."""

    def __init__(
        self,
        auth: AuthSession,
        store_factory: Callable[[], MessageStore],
        agent_factory: Callable[[], InferenceAgent],
        runner_factory: Callable[[str], StatementRunner],
        on_event: Optional[EventCallback] = None,
    ):
        self.auth = auth
        self.store_factory = store_factory
        self.agent_factory = agent_factory
        self.runner_factory = runner_factory
        self.on_event = on_event
        self._workspaces: Dict[str, Workspace] = {}
        self._lock = asyncio.Lock()

    def get(self, project_id: str) -> Optional[Workspace]:
        return self._workspaces.get(project_id)

    async def open(self, project_id: str, staged: Optional[StagedPrompt] = None) -> Workspace:
        """Return the mounted workspace for a project, creating it on first use.

        Only mounted workspaces are visible through ``get``; concurrent opens
        of a project wait for the first mount and share its workspace.
        """
        workspace = self._workspaces.get(project_id)
        if workspace is not None:
            return workspace

        async with self._lock:
            workspace = self._workspaces.get(project_id)
            if workspace is not None:
                return workspace

            workspace = Workspace(
                project_id,
                self.auth,
                self.store_factory(),
                self.agent_factory(),
                self.runner_factory(project_id),
                on_event=self.on_event,
                staged=staged,
                expanded=config.settings.default_expanded_directories,
                collision_policy=config.settings.artifact_collision_policy,
                context_window=config.settings.context_window,
                history_limit=config.settings.message_history_limit,
                row_limit=config.settings.preview_row_limit,
            )
            await workspace.mount()
            self._workspaces[project_id] = workspace
        logger.info("Opened workspace %s", project_id)
        return workspace

    def close(self, project_id: str) -> None:
        workspace = self._workspaces.pop(project_id, None)
        if workspace is not None:
            workspace.unmount()

    def close_all(self) -> None:
        for project_id in list(self._workspaces):
            self.close(project_id)


_project_databases: Dict[str, databases.Database] = {}


def project_runner(project_id: str) -> DatabaseStatementRunner:
    """Statement runner over the project's own SQLite file."""
    if project_id not in _project_databases:
        Path(config.settings.workspace_db_dir).mkdir(parents=True, exist_ok=True)
        _project_databases[project_id] = databases.Database(config.settings.project_database_url(project_id))
    return DatabaseStatementRunner(_project_databases[project_id])


async def disconnect_project_databases() -> None:
    for db in _project_databases.values():
        if db.is_connected:
            await db.disconnect()
    _project_databases.clear()
