"""
Tests for environment-driven settings.

Behavioral tests verifying defaults, .env loading (exported variables win),
numeric parsing and validation errors naming the offending variable.
"""

import pytest
from unittest.mock import patch


class TestLoadSettings:
    """load_settings() reads Settings from the environment."""

    def test_defaults(self, tmp_path):
        from feedbackflow.config import load_settings

        with patch.dict('os.environ', {}, clear=True):
            settings = load_settings(tmp_path / "missing.env")

        assert settings.github_token == ""
        assert settings.github_graphql_url == "https://api.github.com/graphql"
        assert settings.openai_model == "gpt-4o-mini"
        assert settings.max_attempts == 5
        assert settings.fallback_delay == 60.0
        assert settings.chunk_budget == 350_000
        assert settings.fragment_size == 50
        assert settings.fragment_delay == 0.05
        assert settings.request_timeout == 60.0

    def test_environment_overrides(self, tmp_path):
        from feedbackflow.config import load_settings

        env = {
            'GITHUB_TOKEN': 'ghp_abc',
            'YOUTUBE_API_KEY': 'AIza',
            'OPENAI_MODEL': 'gpt-4o',
            'FEEDBACKFLOW_MAX_ATTEMPTS': '3',
            'FEEDBACKFLOW_FALLBACK_DELAY': '2.5',
            'FEEDBACKFLOW_CHUNK_BUDGET': '1000',
        }
        with patch.dict('os.environ', env, clear=True):
            settings = load_settings(tmp_path / "missing.env")

        assert settings.github_token == 'ghp_abc'
        assert settings.youtube_api_key == 'AIza'
        assert settings.openai_model == 'gpt-4o'
        assert settings.max_attempts == 3
        assert settings.fallback_delay == 2.5
        assert settings.chunk_budget == 1000

    def test_dotenv_file_is_loaded_without_overriding_exports(self, tmp_path):
        from feedbackflow.config import load_settings

        env_file = tmp_path / ".env"
        env_file.write_text(
            "# local settings\n"
            "GITHUB_TOKEN='ghp_from_file'\n"
            "\n"
            "FEEDBACKFLOW_MAX_ATTEMPTS=7\n"
        )

        with patch.dict('os.environ', {'FEEDBACKFLOW_MAX_ATTEMPTS': '2'}, clear=True):
            settings = load_settings(env_file)

        assert settings.github_token == 'ghp_from_file'
        assert settings.max_attempts == 2

    @pytest.mark.parametrize('name,value', [
        ('FEEDBACKFLOW_MAX_ATTEMPTS', 'five'),
        ('FEEDBACKFLOW_FALLBACK_DELAY', '-1'),
        ('FEEDBACKFLOW_MAX_ATTEMPTS', '0'),
        ('FEEDBACKFLOW_CHUNK_BUDGET', '0'),
        ('FEEDBACKFLOW_FRAGMENT_SIZE', '0'),
    ])
    def test_invalid_numbers_name_the_variable(self, tmp_path, name, value):
        from feedbackflow.config import load_settings

        with patch.dict('os.environ', {name: value}, clear=True):
            with pytest.raises(ValueError, match=name):
                load_settings(tmp_path / "missing.env")

    def test_settings_are_immutable(self):
        from feedbackflow.config import Settings

        settings = Settings()

        with pytest.raises(Exception):
            settings.max_attempts = 10
