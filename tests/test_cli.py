"""
Tests for the traceprof command-line entry point.
"""

import json

import pytest

from traceprof.cli import main
from tests.fixtures.traces import scenario_a, branch_nodes, chunk_event, profile_event


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('TRACEPROF_WARMUP_SKIP', 'TRACEPROF_TOP_N',
                 'TRACEPROF_INCLUDE_LINE_RECORDS', 'TRACEPROF_INCLUDE_ROOT'):
        monkeypatch.delenv(name, raising=False)


def write_json(path, doc):
    path.write_text(json.dumps(doc))
    return path


class TestCli:

    def test_text_report(self, tmp_path, capsys):
        trace = write_json(tmp_path / 'trace.json', {'traceEvents': scenario_a()})
        assert main([str(trace)]) == 0
        out = capsys.readouterr().out
        assert 'FUNCTIONS' in out
        assert '0.000 a' in out
        assert 'app.js:4:1' in out  # line hotspot, raw line

    def test_json_report(self, tmp_path, capsys):
        trace = write_json(tmp_path / 'trace.json', scenario_a())
        assert main([str(trace), '--json', '--no-lines']) == 0
        report = json.loads(capsys.readouterr().out)
        assert report['lines'] == []
        assert {f['name'] for f in report['functions']} == {'(root)', 'a'}

    def test_flags_override_settings(self, tmp_path, capsys):
        events = [profile_event(ts=0), chunk_event(1000, branch_nodes(), [3, 2, 3, 2], [100] * 4, [0] * 4)]
        trace = write_json(tmp_path / 'trace.json', events)
        config = tmp_path / 'settings.yaml'
        config.write_text('traceprof:\n  warmup_skip: 5\n')

        assert main([str(trace), '--json', '--config', str(config), '--warmup-skip', '0', '--top', '1', '--no-root']) == 0
        report = json.loads(capsys.readouterr().out)
        assert [f['name'] for f in report['functions']] == ['b']
        assert report['functions'][0]['mean_ms'] == pytest.approx(0.1)

    def test_cpuprofile_input(self, tmp_path, capsys):
        profile = {
            'nodes': [
                {'id': 1, 'callFrame': {'functionName': '(root)', 'url': ''}, 'children': [2]},
                {'id': 2, 'callFrame': {'functionName': 'main', 'scriptId': '1',
                                        'url': '/abs/main.js', 'lineNumber': 2, 'columnNumber': 0}},
            ],
            'samples': [2, 2],
            'timeDeltas': [500, 500],
            'startTime': 0,
            'endTime': 1000,
        }
        path = write_json(tmp_path / 'run.cpuprofile', profile)
        assert main([str(path), '--json', '--strip-paths']) == 0
        report = json.loads(capsys.readouterr().out)
        main_rec = next(f for f in report['functions'] if f['name'] == 'main')
        assert main_rec['url'] == 'noAbsolutePaths/main.js'

    def test_structure_error_exit_code(self, tmp_path, capsys):
        events = [profile_event(ts=0), chunk_event(100, branch_nodes(), [3, 3], [1], [0, 0])]
        trace = write_json(tmp_path / 'trace.json', events)
        assert main([str(trace)]) == 1
        assert '[ERROR]' in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / 'nope.json')]) == 1

    def test_dotenv_in_working_directory(self, tmp_path, monkeypatch, capsys):
        events = [profile_event(ts=0), chunk_event(1000, branch_nodes(), [3, 2, 3, 2], [100] * 4, [0] * 4)]
        trace = write_json(tmp_path / 'trace.json', events)
        (tmp_path / '.env').write_text('TRACEPROF_WARMUP_SKIP=0\n')
        monkeypatch.chdir(tmp_path)

        assert main([str(trace), '--json', '--no-root', '--top', '1']) == 0
        report = json.loads(capsys.readouterr().out)
        assert report['functions'][0]['mean_ms'] == pytest.approx(0.1)
        monkeypatch.delenv('TRACEPROF_WARMUP_SKIP', raising=False)


class TestSelfTimeCli:

    def test_self_time_text(self, tmp_path, capsys):
        path = write_json(tmp_path / 'run.cpuprofile', hit_profile())
        assert main([str(path), '--self-time']) == 0
        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith('2.000 slow h=1')
        assert out[1].startswith('0.500 fast h=2')

    def test_self_time_json(self, tmp_path, capsys):
        path = write_json(tmp_path / 'run.cpuprofile', {'profile': hit_profile()})
        assert main([str(path), '--self-time', '--json', '--top', '1']) == 0
        rows = json.loads(capsys.readouterr().out)
        assert [r['name'] for r in rows] == ['slow']
        assert rows[0]['hit_count'] == 1

    def test_self_time_needs_cpuprofile(self, tmp_path, capsys):
        trace = write_json(tmp_path / 'trace.json', {'traceEvents': scenario_a()})
        assert main([str(trace), '--self-time']) == 1
        assert '.cpuprofile' in capsys.readouterr().err


def hit_profile():
    return {
        'nodes': [
            {'id': 1, 'callFrame': {'functionName': '(root)', 'scriptId': '0', 'url': '',
                                    'lineNumber': -1, 'columnNumber': -1},
             'hitCount': 0, 'children': [2, 3]},
            {'id': 2, 'callFrame': {'functionName': 'fast', 'scriptId': '1', 'url': 'app.js',
                                    'lineNumber': 1, 'columnNumber': 0}, 'hitCount': 2},
            {'id': 3, 'callFrame': {'functionName': 'slow', 'scriptId': '1', 'url': 'app.js',
                                    'lineNumber': 9, 'columnNumber': 0}, 'hitCount': 1},
        ],
        'samples': [2, 3, 2],
        'timeDeltas': [500, 2000, 500],
        'startTime': 0,
        'endTime': 3000,
    }
