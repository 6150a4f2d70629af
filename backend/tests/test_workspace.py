"""
Tests for the per-project workspace wiring.

These tests verify that:
1. Assistant replies become file writes in the tree
2. Colliding artifact names follow the configured policy
3. Generated DDL refreshes the table list, other SQL does not
4. Mounting opens the entry file and loads tables
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from app.core.events import EventType
from app.schemas.workspace import InferenceResponse
from app.services.conversation import StagedPrompt
from app.services.workspace import STARTER_FILES, Workspace, WorkspaceRegistry
from fakes import FakeAgent, FakeRunner


def make_workspace(auth, store, agent=None, runner=None, **kwargs):
    return Workspace(
        "p1",
        auth,
        store,
        agent or FakeAgent(),
        runner or FakeRunner(),
        **kwargs,
    )


class TestMount:
    """Tests for Workspace.mount."""

    def test_starts_from_scaffold(self, auth, store):
        workspace = make_workspace(auth, store)

        assert sorted(f.path for f in workspace.tree.iter_files()) == sorted(STARTER_FILES)
        assert workspace.view.expanded_directories == {"src"}

    @pytest.mark.asyncio
    async def test_mount_opens_entry_and_loads_tables(self, auth, store, todos_runner):
        workspace = make_workspace(auth, store, runner=todos_runner)

        await workspace.mount()

        assert workspace.view.active_path == "src/App.tsx"
        assert [t.name for t in workspace.inspector.tables] == ["todos"]
        assert workspace.conversation.mounted

    @pytest.mark.asyncio
    async def test_unmount_closes_everything(self, auth, store):
        workspace = make_workspace(auth, store)
        await workspace.mount()

        workspace.unmount()

        assert not workspace.conversation.mounted
        assert workspace.inspector._closed


class TestApplyResponse:
    """Tests for Workspace.apply_response."""

    @pytest.mark.asyncio
    async def test_code_block_written(self, auth, store):
        workspace = make_workspace(auth, store)

        written = await workspace.apply_response("Here:\n```tsx\nexport const A = 1\n```")

        node = workspace.tree.find("generated.tsx")
        assert node.content == "export const A = 1"
        assert node.language == "typescript"
        assert [a.name for a in written] == ["generated.tsx"]
        assert workspace.last_artifacts == written

    @pytest.mark.asyncio
    async def test_fence_language_kept(self, auth, store):
        workspace = make_workspace(auth, store)

        await workspace.apply_response("```python\nprint(1)\n```\n```typescript\nlet x = 1\n```")

        assert workspace.tree.find("generated.python").language == "python"
        assert workspace.tree.find("generated.typescript").language == "typescript"

    @pytest.mark.asyncio
    async def test_html_written_to_index(self, auth, store):
        workspace = make_workspace(auth, store)

        await workspace.apply_response("Done.", "<main>Hello</main>")

        assert workspace.tree.find("index.html").content == "<main>Hello</main>"

    @pytest.mark.asyncio
    async def test_no_artifacts(self, auth, store):
        workspace = make_workspace(auth, store)
        before = workspace.tree.snapshot()

        written = await workspace.apply_response("Just prose, no code.")

        assert written == []
        assert workspace.tree.snapshot() == before

    @pytest.mark.asyncio
    async def test_last_wins_by_default(self, auth, store):
        workspace = make_workspace(auth, store)

        await workspace.apply_response("```js\nfirst()\n```\n```js\nsecond()\n```")

        assert workspace.tree.find("generated.js").content == "second()"

    @pytest.mark.asyncio
    async def test_auto_suffix_policy(self, auth, store):
        workspace = make_workspace(auth, store, collision_policy="auto_suffix")

        await workspace.apply_response("```js\nfirst()\n```\n```js\nsecond()\n```")

        assert workspace.tree.find("generated.js").content == "first()"
        assert workspace.tree.find("generated-2.js").content == "second()"

    @pytest.mark.asyncio
    async def test_ddl_triggers_refresh(self, auth, store):
        runner = FakeRunner()
        workspace = make_workspace(auth, store, runner=runner)

        await workspace.apply_response("```sql\nCREATE TABLE notes (id TEXT PRIMARY KEY);\n```")

        assert runner.refresh_count() == 1
        # Generated SQL is written, never executed
        assert not any(s.startswith("CREATE TABLE notes") for s in runner.statements)

    @pytest.mark.asyncio
    async def test_plain_sql_does_not_refresh(self, auth, store):
        runner = FakeRunner()
        workspace = make_workspace(auth, store, runner=runner)

        await workspace.apply_response("```sql\nSELECT * FROM todos;\n```")

        assert runner.refresh_count() == 0
        assert workspace.tree.find("generated.sql") is not None

    @pytest.mark.asyncio
    async def test_open_clean_tab_follows_rewrite(self, auth, store):
        workspace = make_workspace(auth, store)
        await workspace.apply_response("```css\nh1 {}\n```")
        workspace.view.open_tab("generated.css")

        await workspace.apply_response("```css\nh2 {}\n```")

        assert workspace.view.buffered_content["generated.css"] == "h2 {}"

    @pytest.mark.asyncio
    async def test_events_published(self, auth, store):
        on_event = AsyncMock()
        workspace = make_workspace(auth, store, on_event=on_event)

        await workspace.apply_response("```css\nh1 {}\n```")

        types = [c.args[0].type for c in on_event.await_args_list]
        assert types == [EventType.ARTIFACT_EXTRACTED, EventType.FILE_WRITTEN]

    @pytest.mark.asyncio
    async def test_artifact_over_directory_is_skipped(self, auth, store):
        workspace = make_workspace(auth, store)
        workspace.tree.upsert_file("index.html/readme.md", "x")

        written = await workspace.apply_response("", "<p/>")

        assert written == []
        assert workspace.tree.find("index.html").type == "directory"


class TestTurnToFiles:
    """End-to-end: a conversation turn lands in the tree."""

    @pytest.mark.asyncio
    async def test_reply_writes_files(self, auth, store):
        agent = FakeAgent([InferenceResponse(response="```tsx\nexport default function App() {}\n```")])
        workspace = make_workspace(auth, store, agent=agent)
        await workspace.mount()

        await workspace.conversation.send("Make an App component")

        assert workspace.tree.find("generated.tsx").content == "export default function App() {}"

    @pytest.mark.asyncio
    async def test_staged_prompt_runs_on_mount(self, auth, store):
        agent = FakeAgent([InferenceResponse(response="```css\nbody {}\n```")])
        workspace = make_workspace(auth, store, agent=agent, staged=StagedPrompt("Style it"))

        await workspace.mount()
        await workspace.conversation.bootstrap_task

        assert len(agent.calls) == 1
        assert workspace.tree.find("generated.css").content == "body {}"


class TestWorkspaceRegistry:
    """Tests for WorkspaceRegistry."""

    @pytest.fixture
    def registry(self, auth, store):
        return WorkspaceRegistry(
            auth,
            store_factory=lambda: store,
            agent_factory=FakeAgent,
            runner_factory=lambda project_id: FakeRunner(),
        )

    @pytest.mark.asyncio
    async def test_open_reuses_workspace(self, registry):
        first = await registry.open("p1")
        second = await registry.open("p1")

        assert first is second
        assert registry.get("p1") is first

    @pytest.mark.asyncio
    async def test_concurrent_opens_share_mounted_workspace(self, auth, store):
        runners = []

        def runner_factory(project_id):
            runners.append(FakeRunner())
            return runners[-1]

        async def slow_history(*args):
            await asyncio.sleep(0)
            return []

        store.list_messages.side_effect = slow_history
        registry = WorkspaceRegistry(
            auth, store_factory=lambda: store, agent_factory=FakeAgent, runner_factory=runner_factory
        )

        first_open = asyncio.create_task(registry.open("p1"))
        await asyncio.sleep(0)
        assert registry.get("p1") is None

        second = await registry.open("p1")
        first = await first_open

        assert first is second
        assert len(runners) == 1
        assert first.conversation.mounted
        assert first.conversation.user is not None

    @pytest.mark.asyncio
    async def test_open_applies_settings(self, registry):
        with patch("app.core.config.settings.artifact_collision_policy", "first_wins"), \
             patch("app.core.config.settings.context_window", 3):
            workspace = await registry.open("p2")

        assert workspace.collision_policy == "first_wins"
        assert workspace.conversation.context_window == 3

    @pytest.mark.asyncio
    async def test_close_unmounts(self, registry):
        workspace = await registry.open("p1")

        registry.close("p1")

        assert registry.get("p1") is None
        assert not workspace.conversation.mounted

    @pytest.mark.asyncio
    async def test_close_all(self, registry):
        await registry.open("a")
        await registry.open("b")

        registry.close_all()

        assert registry.get("a") is None
        assert registry.get("b") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
