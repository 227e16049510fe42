import unittest

import pytest

from scoring.utils import DEFAULT_GATES, apply_env_overrides, list_presets, load_gates, load_preset


class TestScoringUtils(unittest.TestCase):
    def test_load_gates_defaults(self):
        gates = load_gates(path=None, env={})
        for k in ('min_activities', 'min_tool_types', 'max_observer_ratio', 'min_cluster_size'):
            self.assertIn(k, gates)
        self.assertEqual(gates['min_activities'], 3)
        self.assertEqual(gates['max_observer_ratio'], 0.6)

    def test_bundled_presets(self):
        self.assertEqual(set(list_presets()), {'lenient', 'strict'})
        strict = load_preset('strict', env={})
        self.assertEqual(strict['min_tool_types'], 3)
        self.assertEqual(strict['min_cluster_size'], 3)
        # keys the preset leaves out keep their defaults
        self.assertEqual(strict['min_filled_ratio'], DEFAULT_GATES['min_filled_ratio'])

    def test_env_overrides(self):
        gates = apply_env_overrides(dict(DEFAULT_GATES), {'CONTRIB_MIN_TOOL_TYPES': '1', 'CONTRIB_MAX_OBSERVER_RATIO': '0.9'})
        self.assertEqual(gates['min_tool_types'], 1)
        self.assertEqual(gates['max_observer_ratio'], 0.9)

    def test_env_override_invalid_value(self):
        with self.assertRaises(ValueError):
            apply_env_overrides(dict(DEFAULT_GATES), {'CONTRIB_MIN_ACTIVITIES': 'three'})


def test_load_gates_from_yaml(tmp_path):
    p = tmp_path / 'gates.yaml'
    p.write_text('min_activities: 4\nunknown_key: 7\n', encoding='utf-8')
    gates = load_gates(path=str(p), env={})
    assert gates['min_activities'] == 4
    assert 'unknown_key' not in gates


def test_missing_file_falls_back_to_defaults(tmp_path):
    gates = load_gates(path=str(tmp_path / 'nope.yaml'), env={})
    assert gates == DEFAULT_GATES


def test_environment_beats_yaml(tmp_path, monkeypatch):
    p = tmp_path / 'gates.yaml'
    p.write_text('min_activities: 4\n', encoding='utf-8')
    monkeypatch.setenv('CONTRIB_MIN_ACTIVITIES', '6')
    assert load_gates(path=str(p))['min_activities'] == 6


def test_malformed_yaml_raises(tmp_path):
    p = tmp_path / 'gates.yaml'
    p.write_text('min_activities: [1, 2\n', encoding='utf-8')
    with pytest.raises(ValueError):
        load_gates(path=str(p), env={})


def test_non_mapping_yaml_raises(tmp_path):
    p = tmp_path / 'gates.yaml'
    p.write_text('- 1\n- 2\n', encoding='utf-8')
    with pytest.raises(ValueError, match='mapping'):
        load_gates(path=str(p), env={})


def test_unknown_preset_raises(tmp_path):
    p = tmp_path / 'gates.yaml'
    p.write_text('presets:\n  quick:\n    min_activities: 1\n', encoding='utf-8')
    assert load_preset('quick', path=str(p), env={})['min_activities'] == 1
    with pytest.raises(ValueError, match='not found'):
        load_preset('slow', path=str(p), env={})


def test_list_presets_without_file(tmp_path):
    assert list_presets(str(tmp_path / 'missing.yaml')) == []
