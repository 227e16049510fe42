import unittest
from datetime import datetime, timedelta, timezone

import pytest

from correlate.models import ErrorCodes, PipelineError, WarningCodes
from normalize.models import ActivityWithRefs, CareerPersona, ClusterMetrics, HydratedCluster, NarrativeComponent
from scoring.narrative import HIGH, LOW, MEDIUM, OBSERVER_NOTE, NarrativeExtractor, describe_gate

T0 = datetime(2025, 2, 3, 9, 0, tzinfo=timezone.utc)

PERSONA = CareerPersona(
    'Dana Lee',
    emails=['dana@example.com'],
    identities={'github': {'login': 'dlee'}, 'slack': {'userId': 'U123'}},
)


def act(id, source, title, hours, description=None, raw_data=None):
    return ActivityWithRefs(id, source, title, T0 + timedelta(hours=hours), refs=['AUTH-1'], description=description, raw_data=raw_data)


def hydrated(activities, id='cluster-1'):
    ordered = sorted(activities, key=lambda a: (a.timestamp, a.id))
    metrics = ClusterMetrics(
        len(ordered), 1, sorted({a.source for a in ordered}),
        earliest=ordered[0].timestamp if ordered else None,
        latest=ordered[-1].timestamp if ordered else None,
    )
    return HydratedCluster(id, [a.id for a in ordered], ['AUTH-1'], metrics, ordered)


def login_story():
    return hydrated([
        act('j1', 'jira', 'Login is slow for users', 0, description='Problem: login takes 8 seconds', raw_data={'assignee': 'dana@example.com'}),
        act('g1', 'github', 'Implement token cache', 5, raw_data={'author': 'dlee'}),
        act('s1', 'slack', 'Deployed; latency reduced by 80%', 30, raw_data={'author': 'U123'}),
    ])


class TestGates(unittest.TestCase):
    def setUp(self):
        self.extractor = NarrativeExtractor()

    def test_single_tool_cluster_fails_tool_gate(self):
        cluster = hydrated([
            act(f"j{i}", 'jira', f"Ticket {i}", i, raw_data={'assignee': 'dana@example.com'}) for i in range(3)
        ])
        result = self.extractor.process(cluster, PERSONA)
        self.assertIsNone(result.data.narrative)
        self.assertEqual(result.data.failed_gates, ['MIN_TOOL_TYPES'])
        self.assertEqual(result.data.gate_details, [{'gate': 'MIN_TOOL_TYPES', 'actual': 1, 'limit': 2}])
        self.assertIn('MIN_TOOL_TYPES (1 < 2)', result.warnings[0].message)
        self.assertEqual(result.warning_codes(), [WarningCodes.VALIDATION_GATES_FAILED])
        self.assertEqual(result.warnings[0].context['cluster_id'], 'cluster-1')

    def test_too_few_activities(self):
        cluster = hydrated([
            act('j1', 'jira', 'Ticket', 0, raw_data={'assignee': 'dana@example.com'}),
            act('g1', 'github', 'PR', 1, raw_data={'author': 'dlee'}),
        ])
        result = self.extractor.process(cluster, PERSONA)
        self.assertEqual(result.data.failed_gates, ['MIN_ACTIVITIES'])

    def test_observer_heavy_cluster_fails(self):
        cluster = hydrated([
            act('j1', 'jira', 'Ticket', 0, raw_data={'watchers': ['dana@example.com']}),
            act('g1', 'github', 'PR', 1),
            act('c1', 'confluence', 'Page', 2),
        ])
        result = self.extractor.process(cluster, PERSONA)
        self.assertEqual(result.data.failed_gates, ['MAX_OBSERVER_RATIO'])
        self.assertEqual(describe_gate(result.data.gate_details[0]), 'MAX_OBSERVER_RATIO (100% > 60%)')
        self.assertEqual(len(result.data.participations), 3)

    def test_gate_override_per_call(self):
        cluster = hydrated([
            act(f"j{i}", 'jira', f"Ticket {i}", i, raw_data={'assignee': 'dana@example.com'}) for i in range(3)
        ])
        result = self.extractor.process(cluster, PERSONA, gates={'min_tool_types': 1})
        self.assertIsNotNone(result.data.narrative)

    def test_validate_rejects_bad_ratio(self):
        with self.assertRaises(ValueError):
            NarrativeExtractor({'max_observer_ratio': 1.5}).validate()


class TestStarNarrative(unittest.TestCase):
    def setUp(self):
        self.result = NarrativeExtractor().process(login_story(), PERSONA)
        self.narrative = self.result.data.narrative

    def test_components_follow_framework_order(self):
        self.assertEqual([c.name for c in self.narrative.components], ['situation', 'task', 'action', 'result'])
        self.assertEqual(self.narrative.framework, 'STAR')

    def test_situation_from_earliest_cue(self):
        situation = self.narrative.component('situation')
        self.assertEqual(situation.text, 'Problem: login takes 8 seconds')
        self.assertEqual(situation.sources, ['j1'])

    def test_action_prefers_code_review(self):
        action = self.narrative.component('action')
        self.assertEqual(action.sources[0], 'g1')
        self.assertTrue(action.text.startswith('Implement token cache'))

    def test_result_from_latest_cue(self):
        result = self.narrative.component('result')
        self.assertEqual(result.text, 'Deployed; latency reduced by 80%')
        self.assertEqual(result.sources[0], 's1')

    def test_task_falls_back_to_tool_preference(self):
        task = self.narrative.component('task')
        self.assertEqual(task.sources, ['j1'])
        self.assertEqual(task.confidence, MEDIUM)

    def test_score_and_summary(self):
        self.assertTrue(self.narrative.validation.passed)
        self.assertEqual(self.narrative.validation.score, 87)
        self.assertEqual(self.narrative.participation_summary['initiator'], 3)
        self.assertEqual(self.narrative.suggested_edits, [])

    def test_metadata(self):
        meta = self.narrative.metadata
        self.assertEqual(meta['total_activities'], 3)
        self.assertEqual(meta['tools_covered'], ['github', 'jira', 'slack'])
        self.assertEqual(meta['date_range']['start'], T0)
        self.assertEqual(meta['date_range']['end'], T0 + timedelta(hours=30))


def test_deterministic_output():
    extractor = NarrativeExtractor()
    first = extractor.process(login_story(), PERSONA).data.narrative.to_dict()
    second = extractor.process(login_story(), PERSONA).data.narrative.to_dict()
    assert first == second


def test_carl_component_order():
    narrative = NarrativeExtractor().process(login_story(), PERSONA, framework='carl').data.narrative
    assert [c.name for c in narrative.components] == ['context', 'action', 'result', 'learning']


def test_numeric_result_from_payload_metrics():
    cluster = hydrated([
        act('j1', 'jira', 'Session store', 0, raw_data={'assignee': 'dana@example.com'}),
        act('g1', 'github', 'Session store rewrite', 1, raw_data={'author': 'dlee', 'additions': 120, 'deletions': 30}),
        act('s1', 'slack', 'Chat about the store', 2, raw_data={'author': 'U123'}),
    ])
    result = NarrativeExtractor().process(cluster, PERSONA).data.narrative.component('result')
    assert result.text == '+120/-30 lines'
    assert result.sources == ['g1']
    assert result.confidence == MEDIUM


def test_low_confidence_components_get_edit_suggestions():
    cluster = hydrated([
        act('c1', 'confluence', 'Notes', 0, raw_data={'creator': 'dana@example.com'}),
        act('f1', 'figma', 'Mockups', 1),
        act('f2', 'figma', 'Mockups v2', 2),
    ])
    narrative = NarrativeExtractor().process(cluster, PERSONA, gates={'max_observer_ratio': 1.0}).data.narrative
    action = narrative.component('action')
    assert action.confidence == LOW
    assert 'Add more detail to action: What specific steps did you take?' in narrative.suggested_edits
    assert narrative.suggested_edits[-1] == OBSERVER_NOTE


def test_safe_process_validation_failure_keeps_participations():
    cluster = hydrated([
        act(f"j{i}", 'jira', f"Ticket {i}", i, raw_data={'assignee': 'dana@example.com'}) for i in range(3)
    ])
    result = NarrativeExtractor().safe_process(cluster, PERSONA)
    assert result.is_err
    assert result.failure.code == ErrorCodes.VALIDATION_FAILED
    assert result.failure.context['failed_gates'] == ['MIN_TOOL_TYPES']
    assert result.failure.context['gate_details'] == [{'gate': 'MIN_TOOL_TYPES', 'actual': 1, 'limit': 2}]
    assert [p.level for p in result.failure.context['participations']] == ['initiator'] * 3


def test_safe_process_unknown_framework_is_extraction_failure():
    result = NarrativeExtractor().safe_process(login_story(), PERSONA, framework='NOPE')
    assert result.failure.code == ErrorCodes.EXTRACTION_FAILED


def test_process_or_raise():
    assert NarrativeExtractor().process_or_raise(login_story(), PERSONA).data.narrative is not None
    with pytest.raises(PipelineError):
        NarrativeExtractor().process_or_raise(login_story(), PERSONA, gates={'min_activities': 10})


def retro_story():
    return hydrated([
        act('j1', 'jira', 'Goal: hit the latency objective target', 0, raw_data={'assignee': 'dana@example.com'}),
        act('g1', 'github', 'Implement cache', 4, raw_data={'author': 'dlee'}),
        act('c1', 'confluence', 'Retrospective: lessons learned', 20),
        act('c2', 'confluence', 'We learned a lesson about caching', 26),
    ])


def confident_components(names):
    return [NarrativeComponent(name, f"{name} text", ['j1'], 0.9) for name in names]


class TestAlternativeFrameworks(unittest.TestCase):
    def setUp(self):
        self.extractor = NarrativeExtractor({'max_observer_ratio': 1.0})

    def test_learning_cues_suggest_starl_from_star(self):
        result = self.extractor.process(retro_story(), PERSONA)
        self.assertEqual(result.data.alternative_frameworks, ['STARL', 'SOAR'])

    def test_objective_cue_suggests_soar(self):
        cluster = hydrated([
            act('j1', 'jira', 'Login latency metric is red', 0, description='Problem: login takes 8 seconds', raw_data={'assignee': 'dana@example.com'}),
            act('g1', 'github', 'Implement token cache', 5, raw_data={'author': 'dlee'}),
            act('s1', 'slack', 'Deployed; latency reduced by 80%', 30, raw_data={'author': 'U123'}),
        ])
        result = self.extractor.process(cluster, PERSONA)
        self.assertEqual(result.data.alternative_frameworks, ['SOAR'])

    def test_no_cues_no_alternatives(self):
        result = self.extractor.process(login_story(), PERSONA)
        self.assertEqual(result.data.alternative_frameworks, [])

    def test_high_confidence_suggests_sar(self):
        activities = login_story().activities
        components = confident_components(['situation', 'task', 'action', 'result'])
        self.assertEqual(self.extractor.suggest_alternatives(components, 'STAR', activities), ['SAR'])

    def test_current_framework_is_never_suggested(self):
        result = self.extractor.process(retro_story(), PERSONA, framework='STARL')
        self.assertEqual(result.data.alternative_frameworks, ['SOAR'])
        result = self.extractor.process(retro_story(), PERSONA, framework='SOAR')
        self.assertNotIn('SOAR', result.data.alternative_frameworks)
        self.assertIn('STARL', result.data.alternative_frameworks)

    def test_learning_slot_blocks_starl(self):
        activities = retro_story().activities
        self.assertNotIn('STARL', self.extractor.suggest_alternatives([], 'CARL', activities))

    def test_at_most_two_suggestions(self):
        activities = retro_story().activities
        components = confident_components(['situation', 'task', 'action', 'result'])
        self.assertEqual(self.extractor.suggest_alternatives(components, 'STAR', activities), ['STARL', 'SAR'])


def test_two_of_five_filled_does_not_pass():
    extractor = NarrativeExtractor()
    components = [
        NarrativeComponent('situation', 'Login was slow', ['j1'], HIGH),
        NarrativeComponent('task', '', [], 0.0),
        NarrativeComponent('action', 'Implement token cache', ['g1'], HIGH),
        NarrativeComponent('result', '', [], 0.0),
        NarrativeComponent('learning', '', [], 0.0),
    ]
    validation = extractor.validate_narrative(components, extractor.gates)
    assert not validation.passed
    assert 'Only 2/5 components have content' in validation.warnings


def test_three_of_five_filled_passes():
    extractor = NarrativeExtractor()
    components = [NarrativeComponent(name, 'text' if i < 3 else '', [], MEDIUM) for i, name in enumerate(['situation', 'task', 'action', 'result', 'learning'])]
    assert extractor.validate_narrative(components, extractor.gates).passed
