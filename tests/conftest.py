"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from colimalab.models.lab import LabConfig

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


SAMPLE_CONFIG = {
    "nas-host": "nas.local",
    "nas-user": "root",
    "nfs-path": "/mnt/user/docker-data",
    "nfs-mount": "/Volumes/docker-data",
    "colima-cpu": 4,
    "colima-memory": 8,
    "colima-disk": 60,
    "ollama-model": "mistral:7b",
}


@pytest.fixture
def sample_config_data():
    """Sample config file contents for testing."""
    return dict(SAMPLE_CONFIG)


@pytest.fixture
def lab_config(sample_config_data):
    """Validated LabConfig for the reference homelab."""
    return LabConfig.model_validate(sample_config_data)


@pytest.fixture
def config_file(tmp_path):
    """Write a valid config file and return its path."""
    path = tmp_path / "colimalab.yml"
    lines = []
    for key, value in SAMPLE_CONFIG.items():
        lines.append(f"{key}: {value}")
    path.write_text("# homelab\n" + "\n".join(lines) + "\n")
    return path
