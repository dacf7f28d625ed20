"""Render extraction prompts from items and user context.

The prompt is a plain-text document with XML-like sections the model can
refer to: instructions, the user's companies and projects, then one
<item> per NormalizedItem with its stats and (already budgeted) diffs.
"""

from html import escape
from typing import Any

from connectors.models import NormalizedItem

from .models import ExtractionContext

INSTRUCTIONS = """\
You are extracting achievements from a developer's work history.
For each item below, decide whether it represents an achievement worth recording.
Group closely related items into a single achievement when appropriate.
For every achievement return: title, summary, details, eventDuration
(day, week, month, quarter, half year or year), eventStart, eventEnd,
companyId, projectId, impact (1-3) and sourceItemId (the id of the item it
was derived from). Only use companyId and projectId values listed below.
Default projectId: {project_id}"""


def _tag(name: str, value: Any) -> str:
    if value is None or value == "":
        return ""
    return f"<{name}>{escape(str(value), quote=False)}</{name}>"


def _render_company(company: dict[str, Any]) -> str:
    fields = [
        _tag("id", company.get("id")),
        _tag("name", company.get("name")),
        _tag("role", company.get("role")),
        _tag("start-date", company.get("startDate") or company.get("start_date")),
        _tag("end-date", company.get("endDate") or company.get("end_date") or "Present"),
    ]
    return "<company>" + "".join(f for f in fields if f) + "</company>"


def _render_project(project: dict[str, Any]) -> str:
    fields = [
        _tag("id", project.get("id")),
        _tag("name", project.get("name")),
        _tag("description", project.get("description")),
        _tag("status", project.get("status")),
        _tag("company-id", project.get("companyId") or project.get("company_id")),
    ]
    return "<project>" + "".join(f for f in fields if f) + "</project>"


def _render_item(item: NormalizedItem) -> str:
    raw = item.raw
    lines = [
        f'<item type="{escape(str(raw.get("type", "item")))}">',
        _tag("id", item.id),
        _tag("title", item.title),
        _tag("message", item.description),
        _tag("author", item.author),
        _tag("date", item.timestamp.isoformat()),
    ]

    files = raw.get("files")
    if files:
        lines.append("<file-stats>")
        for f in files:
            lines.append(
                f"<file-stat>{_tag('path', f.get('path'))}"
                f"{_tag('additions', f.get('additions', 0))}"
                f"{_tag('deletions', f.get('deletions', 0))}</file-stat>"
            )
        lines.append("</file-stats>")

    for diff in raw.get("diffs") or []:
        lines.append(f"<file-diff>{_tag('path', diff['path'])}")
        lines.append(f"<diff-content>\n{escape(diff['diff'], quote=False)}\n</diff-content>")
        if diff.get("is_truncated"):
            lines.append("<note>Diff truncated</note>")
        lines.append("</file-diff>")
    if raw.get("diff_truncated"):
        lines.append("<note>Some file diffs were omitted or truncated to fit the size budget</note>")

    lines.append("</item>")
    return "\n".join(line for line in lines if line)


def render_prompt(items: list[NormalizedItem], context: ExtractionContext) -> str:
    """Render one prompt covering a batch of items.

    Args:
        items: Items of one batch
        context: Companies, projects and user of the account

    Returns:
        Prompt text
    """
    sections = [INSTRUCTIONS.format(project_id=context.project_id)]

    user_name = context.user.get("name") if context.user else None
    if user_name:
        sections.append(f"<user>{_tag('name', user_name)}</user>")

    sections.append(
        "<companies>\n" + "\n".join(_render_company(c) for c in context.companies) + "\n</companies>"
    )
    sections.append(
        "<projects>\n" + "\n".join(_render_project(p) for p in context.projects) + "\n</projects>"
    )
    sections.append("<items>\n" + "\n".join(_render_item(item) for item in items) + "\n</items>")

    return "\n\n".join(sections)
