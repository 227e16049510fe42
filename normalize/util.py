"""
Normalization utility helpers.
Small helpers to turn raw collaborator payloads (dicts loaded from JSON) into normalize.models entities.
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from normalize.models import Activity, ActivityWithRefs, CareerPersona, ToolType

# generic tool category names accepted as aliases for the concrete tool types
TOOL_ALIASES = {
    'issue-tracker': ToolType.JIRA,
    'code-review': ToolType.GITHUB,
    'wiki': ToolType.CONFLUENCE,
    'chat': ToolType.SLACK,
    'calendar': ToolType.GOOGLE,
    'mail': ToolType.OUTLOOK,
    'design-tool': ToolType.FIGMA,
}


def normalize_tool_type(value: Optional[str]) -> str:
    """Map a raw source name onto ToolType.ALL; unknown values become 'generic'."""
    name = (value or '').strip().lower()
    if name in ToolType.ALL:
        return name
    return TOOL_ALIASES.get(name, ToolType.GENERIC)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string, epoch seconds or datetime into an aware UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def normalize_activity(raw: Dict[str, Any]) -> Activity:
    """Create an Activity from a raw dict.
    Accepts both camelCase (sourceUrl, rawData) and snake_case keys. If the dict already
    carries a 'refs' list an ActivityWithRefs is returned.
    """
    activity_id = raw.get('id') or raw.get('activity_id') or ''
    source = normalize_tool_type(raw.get('source') or raw.get('tool'))
    source_id = raw.get('sourceId') or raw.get('source_id') or ''
    source_url = raw.get('sourceUrl') or raw.get('source_url') or None
    title = raw.get('title') or ''
    description = raw.get('description')
    timestamp = parse_timestamp(raw.get('timestamp') or raw.get('created_at'))
    if timestamp is None:
        raise ValueError(f"Activity {activity_id!r} has no valid timestamp")
    raw_data = raw.get('rawData') if 'rawData' in raw else raw.get('raw_data')
    if raw_data is not None and not isinstance(raw_data, dict):
        raw_data = None
    if isinstance(raw.get('refs'), list):
        return ActivityWithRefs(str(activity_id), source, title, timestamp, refs=raw['refs'], source_id=str(source_id), source_url=source_url, description=description, raw_data=raw_data)
    return Activity(str(activity_id), source, title, timestamp, source_id=str(source_id), source_url=source_url, description=description, raw_data=raw_data)


def normalize_persona(raw: Dict[str, Any]) -> CareerPersona:
    """Create a CareerPersona from a raw dict.
    Identity blocks keyed by generic category names (e.g. 'issue-tracker') are folded onto tool types.
    """
    display_name = raw.get('displayName') or raw.get('display_name') or raw.get('name') or ''
    emails = [e for e in (raw.get('emails') or []) if isinstance(e, str) and e]
    if raw.get('email') and raw.get('email') not in emails:
        emails.append(raw.get('email'))
    identities: Dict[str, Dict[str, Any]] = {}
    for tool, fields in (raw.get('identities') or {}).items():
        if not isinstance(fields, dict):
            continue
        identities.setdefault(normalize_tool_type(tool), {}).update(fields)
    return CareerPersona(display_name=display_name, emails=emails, identities=identities)
