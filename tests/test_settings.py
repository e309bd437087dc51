"""
Tests for settings module.

Validates:
- Defaults
- Construction from dict (merges over defaults)
- Environment and YAML overrides
- Settings signature is deterministic and sensitive to changes
"""

from traceprof.settings import (
    ProfileSettings,
    settings_from_dict,
    settings_from_env,
    load_settings_file,
    compute_settings_signature,
)


class TestProfileSettingsDefaults:

    def test_warmup_skip(self):
        assert ProfileSettings().warmup_skip == 2

    def test_top_n(self):
        assert ProfileSettings().top_n is None

    def test_include_line_records(self):
        assert ProfileSettings().include_line_records is True

    def test_include_root(self):
        assert ProfileSettings().include_root is True


class TestSettingsFromDict:

    def test_empty_dict_returns_defaults(self):
        assert settings_from_dict({}) == ProfileSettings()

    def test_none_returns_defaults(self):
        assert settings_from_dict(None) == ProfileSettings()

    def test_partial_override(self):
        s = settings_from_dict({'warmup_skip': 5})
        assert s.warmup_skip == 5
        assert s.include_line_records is True

    def test_string_values_are_coerced(self):
        s = settings_from_dict({'warmup_skip': '3', 'include_root': 'false', 'top_n': '10'})
        assert s.warmup_skip == 3
        assert s.include_root is False
        assert s.top_n == 10

    def test_null_top_n(self):
        assert settings_from_dict({'top_n': 'none'}).top_n is None
        assert settings_from_dict({'top_n': None}).top_n is None

    def test_invalid_values_ignored(self):
        s = settings_from_dict({'warmup_skip': -1, 'include_root': 'maybe', 'top_n': float('nan')})
        assert s == ProfileSettings()

    def test_bool_is_not_a_count(self):
        assert settings_from_dict({'warmup_skip': True}).warmup_skip == 2

    def test_extra_fields_ignored(self):
        assert settings_from_dict({'unknown': 1}) == ProfileSettings()


class TestSettingsFromEnv:

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv('TRACEPROF_WARMUP_SKIP', '4')
        monkeypatch.setenv('TRACEPROF_INCLUDE_LINE_RECORDS', '0')
        s = settings_from_env(dotenv_path=tmp_path / 'missing.env')
        assert s.warmup_skip == 4
        assert s.include_line_records is False

    def test_env_over_base(self, monkeypatch, tmp_path):
        monkeypatch.delenv('TRACEPROF_WARMUP_SKIP', raising=False)
        monkeypatch.setenv('TRACEPROF_TOP_N', '3')
        s = settings_from_env(ProfileSettings(warmup_skip=7), dotenv_path=tmp_path / 'missing.env')
        assert s.warmup_skip == 7
        assert s.top_n == 3

    def test_dotenv_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv('TRACEPROF_WARMUP_SKIP', raising=False)
        env_file = tmp_path / '.env'
        env_file.write_text('TRACEPROF_WARMUP_SKIP=6\n')
        assert settings_from_env(dotenv_path=env_file).warmup_skip == 6
        monkeypatch.delenv('TRACEPROF_WARMUP_SKIP', raising=False)

    def test_dotenv_found_from_working_directory(self, monkeypatch, tmp_path):
        """With no explicit path, .env is looked up from the cwd, not the package."""
        monkeypatch.delenv('TRACEPROF_WARMUP_SKIP', raising=False)
        (tmp_path / '.env').write_text('TRACEPROF_WARMUP_SKIP=6\n')
        workdir = tmp_path / 'project' / 'sub'
        workdir.mkdir(parents=True)
        monkeypatch.chdir(workdir)
        assert settings_from_env().warmup_skip == 6
        monkeypatch.delenv('TRACEPROF_WARMUP_SKIP', raising=False)


class TestLoadSettingsFile:

    def test_flat_yaml(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text('warmup_skip: 1\ntop_n: 20\n')
        s = load_settings_file(path)
        assert s.warmup_skip == 1
        assert s.top_n == 20

    def test_nested_yaml(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text('traceprof:\n  include_root: false\n')
        assert load_settings_file(path).include_root is False

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text('')
        assert load_settings_file(path) == ProfileSettings()


class TestSettingsSignature:

    def test_deterministic(self):
        assert compute_settings_signature(ProfileSettings()) == compute_settings_signature(ProfileSettings())

    def test_length(self):
        assert len(compute_settings_signature(ProfileSettings())) == 16

    def test_sensitive_to_change(self):
        assert compute_settings_signature(ProfileSettings()) != compute_settings_signature(ProfileSettings(warmup_skip=3))
