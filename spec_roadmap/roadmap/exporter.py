"""
Roadmap Exporter
================

Renders a Roadmap as Markdown, JSON, CSV, GitHub issue payloads or a
standalone HTML page. Every write is atomic.

The JSON export is the machine-readable format: load_roadmap() reads it
back into an equal Roadmap.
"""

from __future__ import annotations

import csv
import html
import io
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from ..core.exceptions import ErrorContext, ExportError, UnsupportedFormatError
from ..core.safe_io import safe_read_json, safe_write_text
from ..models import Roadmap, RoadmapPhase, ScoredFeature

logger = logging.getLogger(__name__)

DEFAULT_FILENAMES: dict[str, str] = {
    "markdown": "ROADMAP.md",
    "json": "roadmap.json",
    "csv": "roadmap.csv",
    "github-issues": "github-issues.json",
    "html": "roadmap.html",
}
EXPORT_FORMATS = tuple(DEFAULT_FILENAMES)

CSV_HEADER = ["Priority", "Phase", "Title", "Type", "Effort (hours)", "Status", "Tags", "Dependencies"]

_HTML_STYLE = """\
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; }
h1, h2, h3 { color: #333; }
table { border-collapse: collapse; width: 100%; margin: 20px 0; }
th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
th { background-color: #f2f2f2; font-weight: bold; }
.priority-p0 { color: #d73a4a; font-weight: bold; }
.priority-p1 { color: #e99695; }
.priority-p2 { color: #b08800; }
.priority-p3 { color: #6a737d; }"""


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def _cell(text: str) -> str:
    """Markdown table cell: no pipes, no line breaks."""
    return text.replace("|", "\\|").replace("\n", " ")


class RoadmapExporter:
    """
    Writes a roadmap in any supported format.

    Example:
        exporter = RoadmapExporter()
        exporter.export(roadmap, "markdown", Path("docs"))
        exporter.export_all(roadmap, Path("out"))
    """

    def __init__(self) -> None:
        self._renderers: dict[str, Callable[[Roadmap], str]] = {
            "markdown": self.to_markdown,
            "json": self.to_json,
            "csv": self.to_csv,
            "github-issues": self.to_github_issues,
            "html": self.to_html,
        }

    def render(self, roadmap: Roadmap, fmt: str) -> str:
        renderer = self._renderers.get(fmt)
        if renderer is None:
            raise UnsupportedFormatError(
                f"Unsupported export format: {fmt} (expected one of {', '.join(EXPORT_FORMATS)})",
                context=ErrorContext(operation="export", extra={"format": fmt}),
            )
        return renderer(roadmap)

    def export(self, roadmap: Roadmap, fmt: str, path: Path | str) -> Path:
        """
        Render and write one format.

        A directory path receives the format's default file name.

        Raises:
            UnsupportedFormatError: If fmt is unknown
            ExportError: If the file cannot be written
        """
        content = self.render(roadmap, fmt)
        path = Path(path)
        if path.is_dir():
            path = path / DEFAULT_FILENAMES[fmt]
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            safe_write_text(path, content)
        except OSError as e:
            raise ExportError(
                f"Cannot write {fmt} export: {e}",
                context=ErrorContext(operation="export", file_path=str(path), extra={"format": fmt}),
                cause=e,
            ) from e
        logger.info("Exported %s roadmap to %s", fmt, path)
        return path

    def export_all(
        self,
        roadmap: Roadmap,
        out_dir: Path | str,
        formats: Optional[list[str]] = None,
    ) -> dict[str, Path]:
        out_dir = Path(out_dir)
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportError(
                f"Cannot create output directory: {e}",
                context=ErrorContext(operation="export_all", file_path=str(out_dir)),
                cause=e,
            ) from e
        written = {}
        for fmt in formats or EXPORT_FORMATS:
            written[fmt] = self.export(roadmap, fmt, out_dir / DEFAULT_FILENAMES.get(fmt, fmt))
        return written

    # ------------------------------------------------------------------
    # Renderers
    # ------------------------------------------------------------------

    def to_json(self, roadmap: Roadmap) -> str:
        return json.dumps(roadmap.to_dict(), indent=2, ensure_ascii=False) + "\n"

    def to_csv(self, roadmap: Roadmap) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for item in roadmap.all_items:
            phase = _phase(roadmap, item.id)
            writer.writerow(
                [
                    item.priority.value,
                    phase.index if phase else 0,
                    item.title,
                    item.kind,
                    _fmt(item.effort.hours),
                    phase.status if phase else "Not Started",
                    "; ".join(item.tags),
                    "; ".join(item.dependencies),
                ]
            )
        return buffer.getvalue()

    def to_github_issues(self, roadmap: Roadmap) -> str:
        issues = []
        for item in roadmap.all_items:
            phase = _phase(roadmap, item.id)
            labels = [item.priority.value, item.kind]
            labels.extend(t for t in item.tags if t not in labels)
            issues.append(
                {
                    "title": item.title,
                    "body": self._issue_body(item, phase),
                    "labels": labels,
                    "milestone": f"Phase {phase.index}: {phase.name}" if phase else None,
                }
            )
        return json.dumps(issues, indent=2, ensure_ascii=False) + "\n"

    def _issue_body(self, item: ScoredFeature, phase: Optional[RoadmapPhase]) -> str:
        parts = ["## Description", "", item.description or item.title, ""]
        parts += [
            "## Effort Estimate",
            "",
            f"**Hours:** {_fmt(item.effort.hours)}h",
            f"**Range:** {_fmt(item.effort.optimistic)}-{_fmt(item.effort.pessimistic)}h",
            f"**Confidence:** {item.effort.confidence}",
            "",
        ]
        if item.dependencies:
            parts += ["## Dependencies", ""]
            parts += [f"- Depends on: `{dep}`" for dep in item.dependencies]
            parts.append("")
        if item.spec_id:
            parts += ["## Source", "", f"**Spec:** {item.spec_id}"]
            if item.requirement_id:
                parts.append(f"**Requirement:** {item.requirement_id}")
            if item.confidence is not None:
                parts.append(f"**Gap confidence:** {item.confidence}%")
            parts.append("")
        parts.append("---")
        parts.append(
            f"**Priority:** {item.priority.value} | **Phase:** {phase.index if phase else '-'} | **Type:** {item.kind}"
        )
        return "\n".join(parts)

    def to_markdown(self, roadmap: Roadmap) -> str:
        summary = roadmap.summary
        lines = [
            f"# {roadmap.project_name} Roadmap",
            "",
            f"_Generated {roadmap.generated_at} from {roadmap.spec_format} specifications._",
            "",
            "## Summary",
            "",
            f"- **Total items:** {summary.total_items}",
            f"- **Total effort:** {_fmt(summary.total_hours)}h",
            "- **By priority:** " + ", ".join(f"{p}: {n}" for p, n in summary.by_priority.items()),
        ]
        if summary.by_category:
            lines.append("- **By category:** " + ", ".join(f"{c}: {n}" for c, n in summary.by_category.items()))

        lines += ["", "## Timeline", "", "| Team | Weeks | Hours |", "|------|-------|-------|"]
        for estimate in (roadmap.timeline.one_dev, roadmap.timeline.two_devs, roadmap.timeline.three_devs):
            label = "1 developer" if estimate.developers == 1 else f"{estimate.developers} developers"
            lines.append(f"| {label} | {estimate.weeks} | {_fmt(estimate.total_hours)} |")

        for phase in roadmap.phases:
            lines += [
                "",
                f"## Phase {phase.index}: {phase.name}",
                "",
                f"**Effort:** {_fmt(phase.total_hours)}h | **Items:** {len(phase.items)} | **Status:** {phase.status}",
            ]
            if phase.dependencies:
                lines.append("**Depends on:** " + ", ".join(f"Phase {d}" for d in phase.dependencies))
            lines += [
                "",
                "| Priority | Item | Type | Effort | ROI | Dependencies |",
                "|----------|------|------|--------|-----|--------------|",
            ]
            for item_id in phase.items:
                item = roadmap.get_item(item_id)
                if item is None:
                    continue
                deps = ", ".join(item.dependencies) or "-"
                lines.append(
                    f"| {item.priority.value} | {_cell(item.title)} | {item.kind} | "
                    f"{item.effort.display} | {item.roi:.2f} | {_cell(deps)} |"
                )
            if phase.risks:
                lines += ["", "**Risks:**", ""]
                lines += [f"- {risk}" for risk in phase.risks]

        if roadmap.risks:
            lines += ["", "## Risks", ""]
            lines += [f"- {risk}" for risk in roadmap.risks]

        validation = roadmap.validation
        if not validation.is_clean or validation.broken_cycles:
            lines += ["", "## Dependency Issues", ""]
            lines += [f"- Unknown dependency: `{dep}`" for dep in validation.missing_ids]
            lines += [f"- Circular dependency: {' -> '.join(path)}" for path in validation.circular_paths]

        lines += ["", "## Next Steps", ""]
        lines += [f"{n}. {step}" for n, step in enumerate(summary.next_steps, start=1)]
        return "\n".join(lines) + "\n"

    def to_html(self, roadmap: Roadmap) -> str:
        esc = html.escape
        summary = roadmap.summary
        body: list[str] = [
            f"<h1>{esc(roadmap.project_name)} Roadmap</h1>",
            f"<p><em>Generated {esc(roadmap.generated_at)} from {esc(roadmap.spec_format)} specifications.</em></p>",
            "<h2>Summary</h2>",
            "<ul>",
            f"<li><strong>Total items:</strong> {summary.total_items}</li>",
            f"<li><strong>Total effort:</strong> {_fmt(summary.total_hours)}h</li>",
            "<li><strong>By priority:</strong> "
            + esc(", ".join(f"{p}: {n}" for p, n in summary.by_priority.items()))
            + "</li>",
            "</ul>",
            "<h2>Timeline</h2>",
            "<table>",
            "<tr><th>Team</th><th>Weeks</th><th>Hours</th></tr>",
        ]
        for estimate in (roadmap.timeline.one_dev, roadmap.timeline.two_devs, roadmap.timeline.three_devs):
            body.append(
                f"<tr><td>{estimate.developers}</td><td>{estimate.weeks}</td>"
                f"<td>{_fmt(estimate.total_hours)}</td></tr>"
            )
        body.append("</table>")

        for phase in roadmap.phases:
            body.append(f"<h2>Phase {phase.index}: {esc(phase.name)}</h2>")
            body.append(
                f"<p><strong>Effort:</strong> {_fmt(phase.total_hours)}h | "
                f"<strong>Items:</strong> {len(phase.items)}</p>"
            )
            body.append("<table>")
            body.append("<tr><th>Priority</th><th>Item</th><th>Type</th><th>Effort</th><th>Dependencies</th></tr>")
            for item_id in phase.items:
                item = roadmap.get_item(item_id)
                if item is None:
                    continue
                body.append(
                    f'<tr><td class="priority-{item.priority.value.lower()}">{item.priority.value}</td>'
                    f"<td>{esc(item.title)}</td><td>{esc(item.kind)}</td>"
                    f"<td>{esc(item.effort.display)}</td>"
                    f"<td>{esc(', '.join(item.dependencies) or '-')}</td></tr>"
                )
            body.append("</table>")
            if phase.risks:
                body.append("<ul>" + "".join(f"<li>{esc(r)}</li>" for r in phase.risks) + "</ul>")

        if roadmap.risks:
            body.append("<h2>Risks</h2>")
            body.append("<ul>" + "".join(f"<li>{esc(r)}</li>" for r in roadmap.risks) + "</ul>")

        body.append("<h2>Next Steps</h2>")
        body.append("<ol>" + "".join(f"<li>{esc(s)}</li>" for s in summary.next_steps) + "</ol>")

        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '  <meta charset="UTF-8">\n'
            '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            f"  <title>{esc(roadmap.project_name)} Roadmap</title>\n"
            f"  <style>\n{_HTML_STYLE}\n  </style>\n"
            "</head>\n"
            "<body>\n" + "\n".join(body) + "\n</body>\n</html>\n"
        )


def _phase(roadmap: Roadmap, item_id: str) -> Optional[RoadmapPhase]:
    for phase in roadmap.phases:
        if item_id in phase.items:
            return phase
    return None


def load_roadmap(path: Path | str) -> Roadmap:
    """
    Load a roadmap previously written by the JSON exporter.

    Raises:
        ExportError: If the file is missing, not JSON or not a roadmap
    """
    path = Path(path)
    context = ErrorContext(operation="load_roadmap", file_path=str(path))
    try:
        data: Any = safe_read_json(path)
        return Roadmap.from_dict(data)
    except (OSError, json.JSONDecodeError) as e:
        raise ExportError(f"Cannot read roadmap: {e}", context=context, cause=e) from e
    except (KeyError, TypeError, ValueError) as e:
        raise ExportError(f"Not a roadmap document: {e}", context=context, cause=e) from e
