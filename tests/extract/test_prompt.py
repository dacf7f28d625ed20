"""Tests for prompt rendering."""

from datetime import datetime, timezone

from connectors.models import NormalizedItem
from extract.models import ExtractionContext
from extract.prompt import render_prompt


def make_item(**raw):
    return NormalizedItem(
        id="abc123",
        title="Add <cache> layer",
        description="Add <cache> layer\n\nSpeeds up reads.",
        author="Ada",
        timestamp=datetime(2025, 3, 1, 12, tzinfo=timezone.utc),
        raw={"type": "commit", **raw},
    )


CONTEXT = ExtractionContext(
    project_id="proj-1",
    companies=[{"id": "co-1", "name": "Acme", "role": "Engineer", "startDate": "2023-01-01"}],
    projects=[{"id": "proj-1", "name": "API", "status": "active", "companyId": "co-1"}],
    user={"name": "Ada Lovelace"},
)


class TestRenderPrompt:
    """Tests for render_prompt."""

    def test_includes_context(self):
        prompt = render_prompt([make_item()], CONTEXT)
        assert "Default projectId: proj-1" in prompt
        assert "<name>Acme</name>" in prompt
        assert "<end-date>Present</end-date>" in prompt
        assert "<company-id>co-1</company-id>" in prompt
        assert "<name>Ada Lovelace</name>" in prompt

    def test_escapes_item_text(self):
        prompt = render_prompt([make_item()], CONTEXT)
        assert "<title>Add &lt;cache&gt; layer</title>" in prompt
        assert "<id>abc123</id>" in prompt
        assert "<date>2025-03-01T12:00:00+00:00</date>" in prompt

    def test_renders_stats_and_diffs(self):
        item = make_item(
            files=[{"path": "src/cache.py", "additions": 30, "deletions": 2}],
            diffs=[{"path": "src/cache.py", "diff": "+x = 1", "is_truncated": True}],
            diff_truncated=True,
        )
        prompt = render_prompt([item], CONTEXT)
        assert "<path>src/cache.py</path><additions>30</additions><deletions>2</deletions>" in prompt
        assert "<diff-content>\n+x = 1\n</diff-content>" in prompt
        assert "<note>Diff truncated</note>" in prompt
        assert "size budget" in prompt

    def test_empty_context(self):
        prompt = render_prompt([make_item()], ExtractionContext(project_id="p"))
        assert "<companies>\n\n</companies>" in prompt
        assert "<user>" not in prompt
