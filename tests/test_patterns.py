import re
import unittest

import pytest

from patterns import PatternExample, PatternRegistry, PatternValidationError, RefPattern, default_patterns, pattern_registry


def _ticket_pattern(**overrides):
    values = dict(
        id='test-ticket',
        regex=r'\b([A-Z]{2,5})-(\d+)\b',
        tool_type='jira',
        normalize=lambda m: m.group(0),
        examples=[PatternExample('see ABC-1', 'ABC-1')],
        negative_examples=['abc-1'],
    )
    values.update(overrides)
    return RefPattern(**values)


class TestDefaultRegistry(unittest.TestCase):
    def test_every_example_produces_its_ref(self):
        for p in pattern_registry.get_all_patterns():
            for ex in p.examples:
                self.assertIn(ex.expected_ref, set(p.iter_refs(ex.input)), f"{p.id}: {ex.input}")

    def test_every_negative_example_is_silent(self):
        for p in pattern_registry.get_all_patterns():
            for neg in p.negative_examples:
                self.assertEqual(list(p.regex.finditer(neg)), [], f"{p.id}: {neg}")

    def test_superseded_pattern_is_inactive(self):
        active_ids = {p.id for p in pattern_registry.get_active_patterns()}
        self.assertIn('jira-ticket-v2', active_ids)
        self.assertNotIn('jira-ticket-v1', active_ids)
        self.assertIn('jira-ticket-v1', pattern_registry)

    def test_no_recorded_validation_errors(self):
        self.assertEqual(pattern_registry.get_validation_errors(), [])

    def test_default_patterns_cover_every_tool(self):
        tools = {p.tool_type for p in default_patterns()}
        self.assertEqual(tools, {'jira', 'github', 'confluence', 'slack', 'figma', 'google'})


def test_register_rejects_duplicate_id():
    registry = PatternRegistry([_ticket_pattern()])
    with pytest.raises(PatternValidationError, match='already registered'):
        registry.register(_ticket_pattern())


def test_register_rejects_first_match_only():
    with pytest.raises(PatternValidationError, match='find-all'):
        PatternRegistry().register(_ticket_pattern(find_all=False))


def test_register_names_failing_positive_example():
    bad = _ticket_pattern(examples=[PatternExample('see A-1', 'A-1')])
    with pytest.raises(PatternValidationError) as info:
        PatternRegistry().register(bad)
    assert "see A-1" in str(info.value)
    assert info.value.pattern_id == 'test-ticket'


def test_register_rejects_matching_negative_example():
    bad = _ticket_pattern(negative_examples=['ABC-9 should not match'])
    with pytest.raises(PatternValidationError, match='negative example'):
        PatternRegistry().register(bad)


def test_register_requires_examples():
    with pytest.raises(PatternValidationError):
        PatternRegistry().register(_ticket_pattern(examples=[]))


def test_register_rejects_unknown_confidence():
    with pytest.raises(PatternValidationError, match='confidence'):
        PatternRegistry().register(_ticket_pattern(confidence='certain'))


def test_register_wraps_normalizer_errors():
    def boom(m):
        raise RuntimeError('nope')

    with pytest.raises(PatternValidationError, match='normalizer raised'):
        PatternRegistry().register(_ticket_pattern(normalize=boom))


def test_validation_error_is_value_error():
    assert issubclass(PatternValidationError, ValueError)


def test_precompiled_regex_is_accepted():
    p = _ticket_pattern(regex=re.compile(r'\b([A-Z]{2,5})-(\d+)\b'))
    registry = PatternRegistry([p])
    assert registry.get_pattern('test-ticket') is p
    assert len(registry) == 1


def test_jira_boundary_two_char_project_matches():
    v2 = pattern_registry.get_pattern('jira-ticket-v2')
    assert list(v2.iter_refs('AB-1')) == ['AB-1']
    assert list(v2.iter_refs('X-123')) == []
