"""
Tests for the configuration loader.
"""
import pytest
import tempfile
from pathlib import Path

from deliverable_tracker.config import TrackerConfig, get_config, reload_config, ConfigurationError


class TestTrackerConfig:
    """Tests for TrackerConfig class."""

    def test_load_default_config(self):
        """Test loading the default configuration file."""
        config = get_config()
        assert config.version == "1.0.0"
        assert config.database_url.startswith("sqlite")

    def test_logging_settings(self):
        config = get_config()
        assert config.log_level == "INFO"
        assert "%(levelname)s" in config.log_format

    def test_cell_edit_threshold(self):
        assert get_config().cell_edit_key_threshold == 5

    def test_always_read_only_fields(self):
        fields = get_config().always_read_only_fields
        assert "booking_code" in fields
        assert "total_hours" in fields
        assert "variation_hours" not in fields

    def test_numbering_schemes(self):
        config = get_config()
        area = config.get_numbering_scheme("area")
        assert area == {
            "field": "number",
            "pad_length": 2,
            "start_from": "01",
            "scope_field": "project_guid",
        }
        assert config.get_numbering_scheme("project")["scope_field"] is None

    def test_unknown_numbering_scheme(self):
        with pytest.raises(ConfigurationError):
            get_config().get_numbering_scheme("invoice")

    def test_gates_seed_list(self):
        gates = get_config().gates
        names = [g["name"] for g in gates]
        assert names == ["Started", "IFR", "IFC", "Complete"]
        assert all(0 <= g["max_percentage"] <= 1 for g in gates)

    def test_dict_style_access(self):
        config = get_config()
        assert "numbering" in config
        assert config["version"] == "1.0.0"
        assert config.get("missing", "default") == "default"

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reload_returns_fresh_instance(self):
        first = get_config()
        second = reload_config()
        assert second is not first
        assert second.version == first.version


class TestConfigErrors:
    """Tests for configuration failures."""

    def test_missing_file(self):
        with pytest.raises(ConfigurationError):
            TrackerConfig(Path("/nonexistent/deliverable_tracker.yaml"))

    def test_invalid_yaml(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as f:
            f.write("version: [unclosed\n")
            path = Path(f.name)
        try:
            with pytest.raises(ConfigurationError):
                TrackerConfig(path)
        finally:
            path.unlink()

    def test_non_mapping_yaml(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as f:
            f.write("- just\n- a list\n")
            path = Path(f.name)
        try:
            with pytest.raises(ConfigurationError):
                TrackerConfig(path)
        finally:
            path.unlink()

    def test_defaults_for_missing_sections(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as f:
            f.write("version: '2.0.0'\n")
            path = Path(f.name)
        try:
            config = TrackerConfig(path)
            assert config.cell_edit_key_threshold == 5
            assert config.database_url == "sqlite:///./deliverables.db"
            assert config.gates == []
        finally:
            path.unlink()
