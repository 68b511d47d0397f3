"""Tests for configuration loading."""


class TestConfig:
    """Test cases for the configuration loader."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test a missing config file falls back to defaults."""
        from facematch.constants import MatchingConfig, load_config

        config = load_config(tmp_path / "missing.yaml")
        matching = MatchingConfig.from_config(config)

        assert config == {}
        assert matching.distance_scale == 100.0
        assert matching.recognition_threshold == 65.0
        assert matching.update_threshold == 70.0

    def test_sections_from_yaml(self, tmp_path):
        """Test values are read from each section."""
        from facematch.constants import (
            ApiConfig,
            EnrollmentConfig,
            MatchingConfig,
            StorageConfig,
            load_config,
        )

        path = tmp_path / "config.yaml"
        path.write_text(
            "matching:\n"
            "  distance_scale: 80\n"
            "  thresholds:\n"
            "    recognition: 60\n"
            "enrollment:\n"
            "  identifier_pattern: '^[A-Z]{3}$'\n"
            "storage:\n"
            "  database_path: /tmp/x.db\n"
            "api:\n"
            "  port: 9000\n"
        )
        config = load_config(path)

        matching = MatchingConfig.from_config(config)
        assert matching.distance_scale == 80.0
        assert matching.recognition_threshold == 60.0
        assert matching.update_threshold == 70.0
        assert EnrollmentConfig.from_config(config).identifier_pattern == "^[A-Z]{3}$"
        assert StorageConfig.from_config(config).database_path == "/tmp/x.db"
        assert ApiConfig.from_config(config).port == 9000
        assert ApiConfig.from_config(config).cors_origins == ["*"]

    def test_invalid_yaml_logged(self, tmp_path):
        """Test an unreadable config file is treated as empty."""
        from facematch.constants import load_config

        path = tmp_path / "config.yaml"
        path.write_text("matching: [unclosed\n")

        assert load_config(path) == {}

    def test_get_nested(self):
        """Test nested lookups with defaults."""
        from facematch.constants import _get_nested

        config = {"a": {"b": {"c": 1}}, "x": 5}

        assert _get_nested(config, "a", "b", "c") == 1
        assert _get_nested(config, "a", "missing", default=2) == 2
        assert _get_nested(config, "x", "y", default=3) == 3

    def test_reload(self, tmp_path):
        """Test reloading the global config resets cached sections."""
        from facematch.constants import get_config, get_matching_config

        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  thresholds:\n    update: 90\n")

        try:
            get_config().reload(path)
            assert get_matching_config().update_threshold == 90.0
        finally:
            get_config().reload()

        assert get_matching_config().update_threshold == 70.0
