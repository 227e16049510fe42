"""
Report renderer: generate text/Markdown/HTML/CSV/JSON output from GeneratedNarrative objects.
HTML is rendered with Jinja2 using report/templates/narratives.html.j2; a plain HTML renderer is
used when the template is missing.
"""

from typing import Optional, List, Dict, Any
import os
import json
import io
import csv
import html as html_lib

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from normalize.models import GeneratedNarrative
from scoring.frameworks import get_framework

TEMPLATE_NAME = 'narratives.html.j2'


def _label(framework: str, component: str) -> str:
    """Display label for a component, e.g. 'situation' -> 'Situation'."""
    for c in get_framework(framework).components:
        if c.name == component:
            return c.label
    return component.capitalize()


def _date(value) -> str:
    return value.strftime('%Y-%m-%d') if value else '?'


def _date_span(n: GeneratedNarrative) -> str:
    dr = n.metadata.get('date_range') or {}
    return f"{_date(dr.get('start'))} to {_date(dr.get('end'))}"


def _status(n: GeneratedNarrative) -> str:
    return 'PASSED' if n.validation.passed else 'NEEDS WORK'


def render_text(narratives: List[GeneratedNarrative]) -> str:
    """Render a plain-text summary."""
    if not narratives:
        return 'No narratives generated.'
    blocks = []
    for n in narratives:
        lines = [
            f"[{n.cluster_id}] {n.framework} score={n.validation.score} {_status(n)} confidence={n.overall_confidence:.2f}",
        ]
        for c in n.components:
            lines.append(f"  {_label(n.framework, c.name)} ({c.confidence:.2f}): {c.text or '-'}")
        for edit in n.suggested_edits:
            lines.append(f"  * {edit}")
        blocks.append('\n'.join(lines))
    return '\n\n'.join(blocks)


def render_markdown(narratives: List[GeneratedNarrative]) -> str:
    """Render one Markdown section per narrative."""
    md = ["# Career Narratives\n"]
    if not narratives:
        md.append('_No narratives generated._')
        return '\n'.join(md)
    for n in narratives:
        md.append(f"## {n.cluster_id} ({n.framework})\n")
        md.append(f"- Score: **{n.validation.score}** ({_status(n)})")
        md.append(f"- Confidence: **{n.overall_confidence:.2f}**")
        md.append(f"- Period: {_date_span(n)}")
        md.append(f"- Tools: {', '.join(n.metadata.get('tools_covered') or [])}")
        md.append('')
        for c in n.components:
            md.append(f"### {_label(n.framework, c.name)}\n")
            md.append(c.text or '_empty_')
            md.append('')
        if n.suggested_edits:
            md.append('**Suggested edits**\n')
            md.extend(f"- {e}" for e in n.suggested_edits)
            md.append('')
    return '\n'.join(md)


def render_csv(narratives: List[GeneratedNarrative]) -> str:
    """One row per component."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['cluster_id', 'framework', 'score', 'passed', 'component', 'confidence', 'sources', 'text'])
    for n in narratives:
        for c in n.components:
            writer.writerow([n.cluster_id, n.framework, n.validation.score, n.validation.passed, c.name, f"{c.confidence:.2f}", ' '.join(c.sources), c.text])
    return output.getvalue()


def render_json(narratives: List[GeneratedNarrative], extra: Optional[Dict[str, Any]] = None) -> str:
    """Export narratives (and optional extra top-level keys) as JSON."""
    doc: Dict[str, Any] = {'narratives': [n.to_dict() for n in narratives]}
    if extra:
        doc.update(extra)
    return json.dumps(doc, indent=2, default=str)


def render_html_fallback(narratives: List[GeneratedNarrative], summary: Optional[dict] = None) -> str:
    """Simple HTML renderer used when the template is unavailable."""
    html = ["<html><body>", "<h1>Career Narratives</h1>"]
    if not narratives:
        html.append("<p>No narratives generated.</p>")
    for n in narratives:
        html.append(f"<h2>{html_lib.escape(n.cluster_id)} ({html_lib.escape(n.framework)})</h2>")
        html.append(f"<p>Score: {n.validation.score} ({_status(n)})</p>")
        for c in n.components:
            html.append(f"<h3>{html_lib.escape(_label(n.framework, c.name))}</h3>")
            html.append(f"<p>{html_lib.escape(c.text or '')}</p>")
    if summary:
        html.append("<h3>Summary</h3>")
        html.append("<pre>" + json.dumps(summary, indent=2, default=str) + "</pre>")
    html.append("</body></html>")
    return "\n".join(html)


def render_html(narratives: List[GeneratedNarrative], summary: Optional[dict] = None, generated_at: Optional[str] = None, template_dir: Optional[str] = None) -> str:
    tmpl_dir = template_dir or os.path.join(os.path.dirname(__file__), 'templates')
    env = Environment(loader=FileSystemLoader(tmpl_dir), autoescape=select_autoescape(['html', 'xml', 'j2']))
    env.filters['label'] = _label
    env.filters['isodate'] = _date
    try:
        tmpl = env.get_template(TEMPLATE_NAME)
    except TemplateNotFound:
        return render_html_fallback(narratives, summary)
    return tmpl.render(narratives=narratives, summary=summary, generated_at=generated_at)


def render(
    narratives: Optional[List[GeneratedNarrative]] = None,
    fmt: str = 'text',
    summary: Optional[dict] = None,
    generated_at: Optional[str] = None,
) -> str:
    """Main render function. Unknown formats fall back to text."""
    narratives = list(narratives or [])
    fmt_l = (fmt or 'text').lower()
    if fmt_l in ('md', 'markdown'):
        return render_markdown(narratives)
    if fmt_l == 'csv':
        return render_csv(narratives)
    if fmt_l in ('html', 'htm'):
        return render_html(narratives, summary=summary, generated_at=generated_at)
    if fmt_l == 'json':
        return render_json(narratives, {'summary': summary} if summary else None)
    return render_text(narratives)
