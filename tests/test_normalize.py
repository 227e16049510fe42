import unittest
from datetime import datetime, timezone

import pytest

from normalize.models import Activity, ActivityWithRefs
from normalize.util import normalize_activity, normalize_persona, normalize_tool_type, parse_timestamp


class TestNormalize(unittest.TestCase):
    def test_normalize_persona_minimal(self):
        raw = {
            'displayName': 'Alice',
            'email': 'a@example.com',
            'identities': {'github': {'login': 'alice'}, 'issue-tracker': {'accountId': 'u123'}},
        }
        persona = normalize_persona(raw)
        self.assertEqual(persona.display_name, 'Alice')
        self.assertIn('a@example.com', persona.emails)
        self.assertEqual(persona.identities['github'], {'login': 'alice'})
        self.assertEqual(persona.identities['jira'], {'accountId': 'u123'})

    def test_normalize_activity_camel_case(self):
        raw = {
            'id': 'act-1',
            'source': 'jira',
            'sourceId': '100',
            'sourceUrl': 'https://acme.atlassian.net/browse/PROJ-100',
            'title': 'Test issue',
            'timestamp': '2025-01-01T10:00:00Z',
            'rawData': {'assignee': 'u123'},
        }
        activity = normalize_activity(raw)
        self.assertIsInstance(activity, Activity)
        self.assertNotIsInstance(activity, ActivityWithRefs)
        self.assertEqual(activity.source_id, '100')
        self.assertEqual(activity.timestamp, datetime(2025, 1, 1, 10, tzinfo=timezone.utc))
        self.assertEqual(activity.raw_data, {'assignee': 'u123'})

    def test_normalize_activity_with_refs(self):
        activity = normalize_activity({'id': 'a', 'source': 'github', 'title': 't', 'timestamp': '2025-01-01', 'refs': ['X-1']})
        self.assertIsInstance(activity, ActivityWithRefs)
        self.assertEqual(activity.refs, ['X-1'])

    def test_non_dict_raw_data_dropped(self):
        activity = normalize_activity({'id': 'a', 'source': 'jira', 'timestamp': '2025-01-01', 'raw_data': 'oops'})
        self.assertIsNone(activity.raw_data)


def test_missing_timestamp_raises():
    with pytest.raises(ValueError, match='timestamp'):
        normalize_activity({'id': 'a', 'source': 'jira', 'title': 't'})


def test_tool_type_aliases():
    assert normalize_tool_type('GitHub') == 'github'
    assert normalize_tool_type('code-review') == 'github'
    assert normalize_tool_type('wiki') == 'confluence'
    assert normalize_tool_type('trello') == 'generic'
    assert normalize_tool_type(None) == 'generic'


def test_parse_timestamp_variants():
    expected = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp('2025-01-01T00:00:00Z') == expected
    assert parse_timestamp(expected.timestamp()) == expected
    assert parse_timestamp(datetime(2025, 1, 1)) == expected
    assert parse_timestamp('not a date') is None
    assert parse_timestamp('') is None
