import unittest
from datetime import datetime, timezone

import pytest

from correlate.models import ErrorCodes, WarningCodes
from evaluator import attach_refs, build_narratives, run_pipeline
from correlate.linker import RefExtractor
from normalize.models import ActivityWithRefs

PERSONA = {
    'displayName': 'Dana Lee',
    'emails': ['dana@example.com'],
    'identities': {'github': {'login': 'dlee'}, 'slack': {'userId': 'U123'}},
}


def activities():
    return [
        {'id': 'j1', 'source': 'jira', 'title': 'AUTH-1: Login is slow for users', 'description': 'Problem: login takes 8 seconds',
         'timestamp': '2025-02-03T09:00:00Z', 'rawData': {'assignee': 'dana@example.com'}},
        {'id': 'g1', 'source': 'github', 'title': 'Implement token cache for AUTH-1', 'timestamp': '2025-02-03T14:00:00Z',
         'sourceUrl': 'https://github.com/acme/api/pull/7', 'rawData': {'author': 'dlee'}},
        {'id': 's1', 'source': 'slack', 'title': 'Deployed AUTH-1; latency reduced by 80%', 'timestamp': '2025-02-04T15:00:00Z',
         'rawData': {'author': 'U123'}},
        {'id': 'x1', 'source': 'jira', 'title': 'CORE-9 cleanup', 'timestamp': '2025-02-05T09:00:00Z'},
        {'id': 'x2', 'source': 'jira', 'title': 'Follow-up for CORE-9', 'timestamp': '2025-02-06T09:00:00Z'},
        {'id': 'n1', 'source': 'google', 'title': 'Team lunch', 'timestamp': '2025-02-07T12:00:00Z'},
    ]


class TestRunPipeline(unittest.TestCase):
    def setUp(self):
        self.run = run_pipeline(activities(), PERSONA)

    def test_summary(self):
        self.assertEqual(self.run.summary(), {
            'activities': 6,
            'clusters': 2,
            'unclustered': 1,
            'narratives': 1,
            'failed_clusters': 1,
        })
        self.assertEqual(self.run.unclustered, ['n1'])

    def test_refs_attached(self):
        refs = {a.id: a.refs for a in self.run.activities}
        self.assertEqual(refs['g1'], ['AUTH-1', 'acme/api#7'])
        self.assertEqual(refs['n1'], [])

    def test_narrative_for_cross_tool_cluster(self):
        narrative = self.run.narratives['cluster-1']
        self.assertEqual(narrative.framework, 'STAR')
        self.assertEqual([c.name for c in narrative.components], ['situation', 'task', 'action', 'result'])
        self.assertEqual(narrative.participation_summary['initiator'], 3)
        self.assertTrue(narrative.validation.passed)

    def test_gate_failure_recorded_with_participations(self):
        failure = self.run.failures['cluster-2']
        self.assertEqual(failure.code, ErrorCodes.VALIDATION_FAILED)
        self.assertEqual(failure.context['failed_gates'], ['MIN_ACTIVITIES', 'MIN_TOOL_TYPES', 'MAX_OBSERVER_RATIO'])
        self.assertIn({'gate': 'MIN_ACTIVITIES', 'actual': 2, 'limit': 3}, failure.context['gate_details'])
        self.assertEqual([p.activity_id for p in self.run.participations['cluster-2']], ['x1', 'x2'])

    def test_no_refs_warning_surfaces(self):
        self.assertIn(WarningCodes.ACTIVITIES_WITHOUT_REFS, [w.code for w in self.run.warnings])


def test_date_range_narrows_cluster():
    window = (datetime(2025, 2, 3, tzinfo=timezone.utc), datetime(2025, 2, 3, 23, 59, tzinfo=timezone.utc))
    run = run_pipeline(activities(), PERSONA, date_range=window)
    assert WarningCodes.DATE_FILTERED in [w.code for w in run.warnings]
    assert [c.activity_ids for c in run.clusters] == [['g1', 'j1']]
    assert 'MIN_ACTIVITIES' in run.failures['cluster-1'].context['failed_gates']


def test_lenient_gates_produce_both_narratives():
    narratives = build_narratives(activities(), PERSONA, framework='SAR', gates={'min_activities': 2, 'min_tool_types': 1, 'max_observer_ratio': 1.0})
    assert [n.cluster_id for n in narratives] == ['cluster-1', 'cluster-2']
    assert all(n.framework == 'SAR' for n in narratives)


def test_min_cluster_size_gate_applies_to_clustering():
    run = run_pipeline(activities(), PERSONA, gates={'min_cluster_size': 3})
    assert [c.id for c in run.clusters] == ['cluster-1']
    assert sorted(run.unclustered) == ['n1', 'x1', 'x2']


def test_precomputed_refs_are_kept():
    ready = ActivityWithRefs('r1', 'jira', 'no keys here', datetime(2025, 1, 1, tzinfo=timezone.utc), refs=['CUSTOM'])
    assert attach_refs([ready], RefExtractor())[0].refs == ['CUSTOM']


def test_unsupported_record_type():
    with pytest.raises(TypeError):
        run_pipeline([42], PERSONA)


def test_unknown_framework_is_rejected_per_cluster():
    run = run_pipeline(activities(), PERSONA, framework='NOPE')
    assert run.narratives == {}
    assert {f.code for f in run.failures.values()} == {ErrorCodes.EXTRACTION_FAILED}


def test_naive_date_range_is_accepted():
    run = run_pipeline(activities(), PERSONA, date_range=(datetime(2025, 1, 1), datetime(2025, 12, 31)))
    assert WarningCodes.DATE_FILTERED not in [w.code for w in run.warnings]
    assert run.summary()['clusters'] == 2
