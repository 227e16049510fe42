import json
from types import SimpleNamespace

import pytest

import cli
from cli import main, resolve_gates

PERSONA = {
    'displayName': 'Dana Lee',
    'emails': ['dana@example.com'],
    'identities': {'github': {'login': 'dlee'}, 'slack': {'userId': 'U123'}},
}

ACTIVITIES = [
    {'id': 'j1', 'source': 'jira', 'title': 'AUTH-1: Login is slow for users', 'timestamp': '2025-02-03T09:00:00Z',
     'rawData': {'assignee': 'dana@example.com'}},
    {'id': 'g1', 'source': 'github', 'title': 'Implement token cache for AUTH-1', 'timestamp': '2025-02-03T14:00:00Z',
     'rawData': {'author': 'dlee'}},
    {'id': 's1', 'source': 'slack', 'title': 'Deployed AUTH-1; latency reduced by 80%', 'timestamp': '2025-02-04T15:00:00Z',
     'rawData': {'author': 'U123'}},
    {'id': 'x1', 'source': 'jira', 'title': 'CORE-9 cleanup', 'timestamp': '2025-02-05T09:00:00Z'},
    {'id': 'x2', 'source': 'jira', 'title': 'Follow-up for CORE-9', 'timestamp': '2025-02-06T09:00:00Z'},
]


@pytest.fixture
def inputs(tmp_path):
    activities_file = tmp_path / 'activities.json'
    activities_file.write_text(json.dumps(ACTIVITIES), encoding='utf-8')
    persona_file = tmp_path / 'persona.json'
    persona_file.write_text(json.dumps(PERSONA), encoding='utf-8')
    return str(activities_file), str(persona_file)


def test_text_output(inputs, capsys, monkeypatch):
    for var in ('CONTRIB_MIN_ACTIVITIES', 'CONTRIB_MIN_TOOL_TYPES', 'CONTRIB_MAX_OBSERVER_RATIO', 'CONTRIB_MIN_CLUSTER_SIZE'):
        monkeypatch.delenv(var, raising=False)
    activities, persona = inputs
    assert main(['--activities', activities, '--persona', persona]) == 0
    out = capsys.readouterr().out
    assert '[cluster-1] STAR' in out
    assert 'cluster-2: VALIDATION_FAILED (MIN_ACTIVITIES (2 < 3), MIN_TOOL_TYPES (1 < 2), MAX_OBSERVER_RATIO (100% > 60%))' in out


def test_json_output_to_file(inputs, tmp_path, capsys):
    activities, persona = inputs
    out_file = tmp_path / 'out' / 'narratives.json'
    rc = main(['--activities', activities, '--persona', persona, '--output', 'json', '--out-file', str(out_file), '--framework', 'car', '--debug'])
    assert rc == 0
    doc = json.loads(out_file.read_text(encoding='utf-8'))
    assert doc['summary']['clusters'] == 2
    assert doc['narratives'][0]['framework'] == 'CAR'
    assert 'cluster-2' in doc['failures']
    assert doc['failures']['cluster-2']['failed_gates'] == ['MIN_ACTIVITIES', 'MIN_TOOL_TYPES', 'MAX_OBSERVER_RATIO']
    assert doc['diagnostics']
    assert 'Wrote report to' in capsys.readouterr().out


def test_markdown_written_to_default_name(inputs, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    activities, persona = inputs
    assert main(['--activities', activities, '--persona', persona, '--output', 'md']) == 0
    written = list(tmp_path.glob('narratives_*.md'))
    assert len(written) == 1
    assert written[0].read_text(encoding='utf-8').startswith('# Career Narratives')


def test_html_open_calls_browser(inputs, tmp_path, monkeypatch):
    opened = []
    monkeypatch.setattr(cli, '_open_file_in_browser', opened.append)
    activities, persona = inputs
    out_file = str(tmp_path / 'report.html')
    assert main(['--activities', activities, '--persona', persona, '--output', 'html', '--out-file', out_file, '--open']) == 0
    assert opened == [out_file]


def test_preset_and_flags(inputs, capsys):
    activities, persona = inputs
    rc = main(['--activities', activities, '--persona', persona, '--preset', 'lenient', '--max-observer-ratio', '1.0'])
    assert rc == 0
    out = capsys.readouterr().out
    assert '[cluster-2]' in out


def test_list_frameworks(capsys):
    assert main(['--list-frameworks']) == 0
    out = capsys.readouterr().out
    assert 'STAR' in out
    assert 'situation -> hindsight -> action -> result -> example' in out


def test_list_presets(capsys):
    assert main(['--list-presets']) == 0
    assert set(json.loads(capsys.readouterr().out)) == {'lenient', 'strict'}


def test_missing_file_returns_1(tmp_path, capsys):
    rc = main(['--activities', str(tmp_path / 'nope.json'), '--persona', str(tmp_path / 'nope.json')])
    assert rc == 1
    assert 'Failed to read activities file' in capsys.readouterr().out


def test_activities_must_be_a_list(inputs, tmp_path):
    _, persona = inputs
    bad = tmp_path / 'bad.json'
    bad.write_text('{"id": "a"}', encoding='utf-8')
    assert main(['--activities', str(bad), '--persona', persona]) == 1


def test_unknown_preset_returns_2(inputs, capsys):
    activities, persona = inputs
    assert main(['--activities', activities, '--persona', persona, '--preset', 'nope']) == 2
    assert 'Invalid gate configuration' in capsys.readouterr().out


def test_required_arguments():
    with pytest.raises(SystemExit):
        main([])


def test_unknown_framework_rejected(inputs):
    activities, persona = inputs
    with pytest.raises(SystemExit):
        main(['--activities', activities, '--persona', persona, '--framework', 'XYZ'])


def test_resolve_gates_flag_precedence(monkeypatch):
    monkeypatch.setenv('CONTRIB_MIN_ACTIVITIES', '7')
    args = SimpleNamespace(preset='', gates_config='', min_activities=None, min_tool_types=4, max_observer_ratio=None, min_cluster_size=None)
    gates = resolve_gates(args)
    assert gates['min_activities'] == 7
    assert gates['min_tool_types'] == 4
