"""
Scoring utility functions.
Provides validation gate loading (YAML + presets + environment overrides) used by scoring.narrative
and the CLI.
"""
from typing import Dict, Any, Optional, Mapping
import os

import yaml

# filename used for gate YAML configuration
GATES_FILENAME = 'gates.yaml'

DEFAULT_GATES = {
    'min_activities': 3,
    'min_tool_types': 2,
    'max_observer_ratio': 0.6,
    # a narrative passes only if at least max(min_filled_floor, len * min_filled_ratio) components have text
    'min_filled_ratio': 0.5,
    'min_filled_floor': 2,
    'min_cluster_size': 2,
}

_INT_KEYS = ('min_activities', 'min_tool_types', 'min_filled_floor', 'min_cluster_size')

# environment variable -> gate key
ENV_OVERRIDES = {
    'CONTRIB_MIN_ACTIVITIES': 'min_activities',
    'CONTRIB_MIN_TOOL_TYPES': 'min_tool_types',
    'CONTRIB_MAX_OBSERVER_RATIO': 'max_observer_ratio',
    'CONTRIB_MIN_CLUSTER_SIZE': 'min_cluster_size',
}


def default_gates_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', GATES_FILENAME)


def _coerce(key: str, value: Any):
    if key in _INT_KEYS:
        return int(value)
    return float(value)


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        try:
            doc = yaml.safe_load(f) or {}
        except yaml.YAMLError as ex:
            raise ValueError(f"Failed to parse gates config {path}: {ex}")
    if not isinstance(doc, dict):
        raise ValueError(f"Gates config {path} must be a mapping")
    return doc


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for k, v in (overrides or {}).items():
        if k in DEFAULT_GATES and v is not None:
            merged[k] = _coerce(k, v)
    return merged


def apply_env_overrides(gates: Dict[str, Any], env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Apply CONTRIB_* environment variables on top of gates. Invalid values raise ValueError."""
    env = os.environ if env is None else env
    merged = dict(gates)
    for var, key in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == '':
            continue
        try:
            merged[key] = _coerce(key, raw)
        except ValueError:
            raise ValueError(f"Invalid value for {var}: {raw!r}")
    return merged


def load_gates(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Load gate thresholds: defaults, then top-level keys from the YAML file if it exists,
    then environment overrides.
    """
    if not path:
        path = default_gates_path()
    gates = dict(DEFAULT_GATES)
    if os.path.exists(path):
        gates = _merge(gates, _read_yaml(path))
    return apply_env_overrides(gates, env)


def load_preset(preset_name: str, path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Return the gates merged with the named preset from the 'presets' section.

    Example:
        strict = load_preset('strict')

    Raises ValueError when the config file or the preset is missing.
    """
    if not path:
        path = default_gates_path()
    if not os.path.exists(path):
        raise ValueError(f"Gates config file not found at: {path}")
    doc = _read_yaml(path)
    presets = doc.get('presets') or {}
    if preset_name not in presets:
        raise ValueError(f"Preset '{preset_name}' not found in {path}")
    base = _merge(dict(DEFAULT_GATES), doc)
    merged = _merge(base, presets.get(preset_name) or {})
    return apply_env_overrides(merged, env)


def list_presets(path: Optional[str] = None) -> list:
    """Return the preset names from the gates YAML (or empty list if there is no file)."""
    if not path:
        path = default_gates_path()
    if not os.path.exists(path):
        return []
    presets = _read_yaml(path).get('presets') or {}
    return list(presets.keys())
