"""Data models describing each provisioning step."""

import re
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, Field, IPvAnyNetwork, field_validator, model_validator

# RFC 1123 label, as accepted by k3d for cluster names
CLUSTER_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


def _require_absolute(v: str) -> str:
    if not v:
        raise ValueError("path cannot be empty")
    path = PurePosixPath(v)
    if not path.is_absolute():
        raise ValueError(f"path '{v}' must be absolute")
    return str(path)


class ExportSpec(BaseModel):
    """NFS export on the NAS host."""

    host: str
    user: str
    export_path: str
    network: IPvAnyNetwork

    @field_validator("host", "user")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("export_path")
    @classmethod
    def validate_export_path(cls, v: str) -> str:
        return _require_absolute(v)

    @property
    def export_line(self) -> str:
        """Line appended to /etc/exports for this share."""
        return (
            f"{self.export_path} {self.network}"
            "(rw,async,no_subtree_check,no_root_squash,all_squash,anonuid=0,anongid=0)"
        )


class MountSpec(BaseModel):
    """NFS mount on the workstation."""

    server_host: str
    server_path: str
    mount_point: str

    @field_validator("server_path", "mount_point")
    @classmethod
    def validate_paths(cls, v: str) -> str:
        return _require_absolute(v)

    @property
    def source(self) -> str:
        return f"{self.server_host}:{self.server_path}"


class RuntimeSpec(BaseModel):
    """Colima VM sizing and Docker data-root placement."""

    cpu: int = Field(gt=0)
    memory: int = Field(gt=0)  # GiB
    disk: int = Field(gt=0)  # GiB
    mount_path: str
    docker_root: str
    state_dir: Path = Field(default_factory=lambda: Path.home() / ".colima")
    lima_dir: Path = Field(default_factory=lambda: Path.home() / ".lima" / "colima")

    @field_validator("mount_path", "docker_root")
    @classmethod
    def validate_paths(cls, v: str) -> str:
        return _require_absolute(v)

    @model_validator(mode="after")
    def validate_docker_root_on_mount(self) -> "RuntimeSpec":
        root = PurePosixPath(self.docker_root)
        mount = PurePosixPath(self.mount_path)
        if root != mount and mount not in root.parents:
            raise ValueError(
                f"docker_root '{self.docker_root}' must be under mount_path '{self.mount_path}'"
            )
        return self

    @property
    def daemon_json(self) -> str:
        return f'{{"data-root": "{self.docker_root}"}}'


class ClusterSpec(BaseModel):
    """k3d cluster definition. Ports only apply when the cluster is created."""

    name: str
    servers: int = Field(default=1, ge=1)
    ports: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not CLUSTER_NAME_PATTERN.match(v):
            raise ValueError(
                f"cluster name '{v}' must contain only lowercase alphanumeric characters "
                "and hyphens, and cannot start or end with a hyphen"
            )
        return v

    @field_validator("ports")
    @classmethod
    def validate_ports(cls, v: list[str]) -> list[str]:
        for port in v:
            if not port or any(c.isspace() for c in port):
                raise ValueError(f"invalid port mapping '{port}'")
        return v


class ModelSpec(BaseModel):
    """Ollama model to serve locally."""

    model: str
    api_url: str = "http://localhost:11434"
    poll_attempts: int = Field(default=30, ge=0)
    poll_interval: float = Field(default=1.0, ge=0)

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        if not v or not v.split(":", 1)[0]:
            raise ValueError("model name cannot be empty")
        return v

    @property
    def base_name(self) -> str:
        """Model name without its tag, e.g. 'mistral' for 'mistral:7b'."""
        return self.model.split(":", 1)[0]
