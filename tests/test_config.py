"""Tests for tracker.lib.config module."""

from pathlib import Path

import pytest

from tracker.lib.config import load_tracker_config


class TestDefaults:
    """Config for a project without tracker.env."""

    def test_default_values(self, tmp_path):
        config = load_tracker_config(tmp_path, environ={})
        assert config.project_dir == tmp_path.resolve()
        assert config.project_name == tmp_path.resolve().name
        assert config.progress_file == config.project_dir / "claude-progress.txt"
        assert config.feature_list_file == config.project_dir / "feature-list.json"
        assert config.progress_cap == 1000
        assert config.lock_timeout == 30
        assert config.auto_save is True
        assert config.strict_transitions is False

    def test_lock_file_in_state_dir(self, tmp_path):
        config = load_tracker_config(tmp_path, environ={})
        assert config.lock_file == config.project_dir / ".tracker" / "workspace.lock"


class TestTrackerEnv:
    """Values read from <project>/tracker.env."""

    def test_values_applied(self, tmp_path):
        (tmp_path / "tracker.env").write_text(
            'PROJECT_NAME="Shop"\n'
            "PROGRESS_FILE=notes/progress.txt\n"
            "PROGRESS_CAP=50\n"
            "LOCK_TIMEOUT=0\n"
            "AUTO_SAVE=no\n"
            "STRICT_TRANSITIONS=yes\n"
        )
        config = load_tracker_config(tmp_path, environ={})
        assert config.project_name == "Shop"
        assert config.progress_file == config.project_dir / "notes" / "progress.txt"
        assert config.progress_cap == 50
        assert config.lock_timeout == 0
        assert config.auto_save is False
        assert config.strict_transitions is True

    def test_absolute_path_kept(self, tmp_path):
        target = tmp_path / "elsewhere" / "features.json"
        (tmp_path / "tracker.env").write_text(f"FEATURE_LIST_FILE={target}\n")
        config = load_tracker_config(tmp_path, environ={})
        assert config.feature_list_file == Path(target)

    def test_environment_overrides_file(self, tmp_path):
        (tmp_path / "tracker.env").write_text("PROGRESS_CAP=50\n")
        config = load_tracker_config(tmp_path, environ={"TRACKER_PROGRESS_CAP": "20"})
        assert config.progress_cap == 20

    def test_malformed_file_raises(self, tmp_path):
        (tmp_path / "tracker.env").write_text("PROJECT_NAME=$(whoami)\n")
        with pytest.raises(ValueError, match="Forbidden pattern"):
            load_tracker_config(tmp_path, environ={})

    def test_unknown_key_warns(self, tmp_path, caplog):
        (tmp_path / "tracker.env").write_text("PROGRES_CAP=5\n")
        config = load_tracker_config(tmp_path, environ={})
        assert config.progress_cap == 1000
        assert "Ignoring unknown key PROGRES_CAP" in caplog.text


class TestInvalidValues:
    """Bad numbers and booleans fall back to defaults with a warning."""

    def test_non_integer_cap(self, tmp_path, caplog):
        config = load_tracker_config(tmp_path, environ={"TRACKER_PROGRESS_CAP": "lots"})
        assert config.progress_cap == 1000
        assert "Invalid PROGRESS_CAP 'lots', using default 1000" in caplog.text

    def test_cap_below_minimum(self, tmp_path, caplog):
        config = load_tracker_config(tmp_path, environ={"TRACKER_PROGRESS_CAP": "0"})
        assert config.progress_cap == 1000
        assert "below 1" in caplog.text

    def test_negative_lock_timeout(self, tmp_path, caplog):
        config = load_tracker_config(tmp_path, environ={"TRACKER_LOCK_TIMEOUT": "-1"})
        assert config.lock_timeout == 30

    def test_bad_boolean(self, tmp_path, caplog):
        config = load_tracker_config(tmp_path, environ={"TRACKER_AUTO_SAVE": "maybe"})
        assert config.auto_save is True
        assert "Invalid AUTO_SAVE 'maybe'" in caplog.text
