"""Homelab configuration file management.

The configuration lives in a flat YAML file (``colimalab.yml`` by default)
whose keys are the kebab-case field names of ``LabConfig``. The file is
read and written with ruamel.yaml so operator comments survive
``config-set``.
"""

import os
import shutil
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from colimalab.exceptions import ConfigurationError
from colimalab.logging_config import get_logger
from colimalab.models.lab import LabConfig

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "colimalab.yml"
CONFIG_ENV_VAR = "COLIMALAB_CONFIG"

CONFIG_TEMPLATE = """\
# ColimaLab homelab configuration

# NAS exporting the NFS share (reached over SSH with key authentication)
nas-host: nas.local
nas-user: root
nfs-path: /mnt/user/docker-data
nfs-network: 10.0.0.0/24

# Local mount point on the workstation
nfs-mount: /Volumes/docker-data

# Colima VM sizing (memory and disk in GiB)
colima-cpu: 4
colima-memory: 8
colima-disk: 60

# k3d cluster
cluster-name: lab
cluster-servers: 1
cluster-ports:
  - 80:80@loadbalancer
  - 443:443@loadbalancer

# Ollama model, optionally with a tag
ollama-model: mistral:7b
"""


def default_config_path() -> Path:
    """Config path from the environment, or colimalab.yml in the working directory."""
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))


def format_validation_error(error: PydanticValidationError) -> str:
    """Render pydantic errors as one 'field: message' line each."""
    lines = []
    for err in error.errors():
        field = ".".join(str(x) for x in err["loc"]) or "config"
        lines.append(f"  - {field}: {err['msg']}")
    return "\n".join(lines)


class ConfigManager:
    """Reads, validates and updates the homelab configuration file."""

    def __init__(self, config_path: str | Path | None = None):
        """Initialize config manager.

        Args:
            config_path: Path to the YAML config (see default_config_path)
        """
        self.config_path = Path(config_path) if config_path else default_config_path()
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.default_flow_style = False
        self.yaml.indent(mapping=2, sequence=4, offset=2)

    def read(self) -> CommentedMap:
        """Read the config file.

        Raises:
            ConfigurationError: If the file is missing, empty or not a mapping
        """
        logger.debug(f"Reading config file: {self.config_path}")

        if not self.config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {self.config_path}",
                f"Expected location: {self.config_path.absolute()}\n"
                "Create one with 'colimalab init' or pass --config",
            )

        try:
            with open(self.config_path) as f:
                data = self.yaml.load(f)
        except Exception as e:
            logger.error(f"Failed to parse config file: {e}")
            raise ConfigurationError(
                f"Failed to read config file: {e}",
                f"Check the YAML syntax of {self.config_path.absolute()}",
            )

        if data is None:
            raise ConfigurationError(
                "Config file is empty", "Run 'colimalab init --force' to write a template"
            )
        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping of keys to values")

        logger.debug(f"Read config with {len(data)} keys")
        return data

    def write(self, data: dict) -> None:
        """Write config data, keeping a backup of the previous file.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            if self.config_path.exists():
                backup_path = self.config_path.with_suffix(".yml.backup")
                logger.debug(f"Creating backup at: {backup_path}")
                shutil.copy2(self.config_path, backup_path)

            with open(self.config_path, "w") as f:
                self.yaml.dump(data, f)
        except OSError as e:
            logger.error(f"Failed to write config file: {e}")
            raise ConfigurationError(
                f"Failed to write config file: {e}",
                "Check disk space and file system permissions",
            )

        logger.info(f"Wrote config file: {self.config_path}")

    def validate(self, data: dict) -> LabConfig:
        """Validate raw config data.

        Raises:
            ConfigurationError: Listing each invalid or missing field
        """
        try:
            return LabConfig.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {self.config_path}", format_validation_error(e)
            )

    def load(self) -> LabConfig:
        """Read and validate the config file."""
        return self.validate(self.read())

    def get_value(self, key: str) -> Any:
        data = self.read()
        if key not in data:
            raise ConfigurationError(f"Key '{key}' not found in {self.config_path}")
        return data[key]

    def set_value(self, key: str, value: Any) -> None:
        """Update one key, refusing values that make the config invalid."""
        data = self.read()
        data[key] = value
        self.validate(data)
        self.write(data)

    def write_template(self, force: bool = False) -> None:
        """Write the commented starter config.

        Raises:
            ConfigurationError: If the file exists and force is not set
        """
        if self.config_path.exists() and not force:
            raise ConfigurationError(
                f"Config file already exists: {self.config_path}",
                "Use --force to overwrite it",
            )
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(CONFIG_TEMPLATE)
        logger.info(f"Wrote config template: {self.config_path}")
