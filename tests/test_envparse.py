"""Tests for tracker.lib.envparse module."""

import pytest

from tracker.lib.envparse import load_env, parse_env_text


class TestParseEnvText:
    """Tests for KEY=value parsing."""

    def test_basic_pairs(self):
        result = parse_env_text('PROJECT_NAME=demo\nPROGRESS_CAP=50\n')
        assert result == {"PROJECT_NAME": "demo", "PROGRESS_CAP": "50"}

    def test_comments_and_blank_lines_skipped(self):
        text = "# tracker settings\n\nAUTO_SAVE=false\n  # indented comment\n"
        assert parse_env_text(text) == {"AUTO_SAVE": "false"}

    def test_quotes_stripped(self):
        result = parse_env_text('PROJECT_NAME="My App"\nPROGRESS_FILE=\'progress.txt\'\n')
        assert result["PROJECT_NAME"] == "My App"
        assert result["PROGRESS_FILE"] == "progress.txt"

    def test_export_prefix_tolerated(self):
        assert parse_env_text("export LOCK_TIMEOUT=5") == {"LOCK_TIMEOUT": "5"}

    def test_value_may_contain_equals(self):
        assert parse_env_text("NOTES=a=b") == {"NOTES": "a=b"}

    def test_missing_equals_reports_line(self):
        with pytest.raises(ValueError, match=r"tracker.env:2: Invalid syntax"):
            parse_env_text("A=1\nGARBAGE\n", source="tracker.env")

    def test_lowercase_key_rejected(self):
        with pytest.raises(ValueError, match="Invalid key 'project_name'"):
            parse_env_text("project_name=demo")

    @pytest.mark.parametrize("value", ["$(whoami)", "`id`", "${HOME}", "a; rm -rf /", "a && b", "a | b"])
    def test_shell_expansion_rejected(self, value):
        with pytest.raises(ValueError, match="Forbidden pattern"):
            parse_env_text(f"PROJECT_NAME={value}")


class TestLoadEnv:
    """Tests for reading env files from disk."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "tracker.env"
        path.write_text("PROJECT_NAME=demo\n")
        assert load_env(path) == {"PROJECT_NAME": "demo"}

    def test_missing_required_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_env(tmp_path / "tracker.env")

    def test_missing_optional_is_empty(self, tmp_path):
        assert load_env(tmp_path / "tracker.env", required=False) == {}
