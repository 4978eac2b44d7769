"""Tests for runtime configuration loading."""

import tempfile
from pathlib import Path

import pydantic
import pytest
import yaml

from apt_s3.config import MethodConfig, load_config


def _write_yaml(data) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
    return Path(f.name)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load_example_config(self):
        """Loading the example config file populates all fields."""
        config = load_config(
            Path(__file__).resolve().parent.parent / "apt-s3.example.yaml"
        )
        assert config.logging.level == "WARNING"
        assert config.logging.format == "text"
        assert config.transfer.chunk_size == 65536

    def test_load_minimal_config(self):
        """Loading an empty YAML uses defaults for all fields."""
        config = load_config(_write_yaml({}))
        assert config.logging.level == "WARNING"
        assert config.logging.format == "text"
        assert config.transfer.chunk_size == 64 * 1024

    def test_load_logging_section(self):
        config = load_config(_write_yaml({"logging": {"level": "DEBUG", "format": "json"}}))
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "json"
        assert config.transfer.chunk_size == 64 * 1024

    def test_load_transfer_section(self):
        config = load_config(_write_yaml({"transfer": {"chunk_size": 1048576}}))
        assert config.transfer.chunk_size == 1048576

    def test_invalid_format_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            load_config(_write_yaml({"logging": {"format": "xml"}}))

    def test_non_positive_chunk_size_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            load_config(_write_yaml({"transfer": {"chunk_size": 0}}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_defaults_instance(self):
        """MethodConfig() with no arguments uses sane defaults."""
        config = MethodConfig()
        assert config.logging.level == "WARNING"
        assert config.transfer.chunk_size == 65536
