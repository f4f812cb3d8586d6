"""Top-level homelab configuration model."""

from pydantic import BaseModel, ConfigDict, Field, IPvAnyNetwork, model_validator
from pydantic import ValidationError as PydanticValidationError

from colimalab.models.specs import ClusterSpec, ExportSpec, ModelSpec, MountSpec, RuntimeSpec


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class LabConfig(BaseModel):
    """Configuration for the whole homelab, as stored in colimalab.yml.

    The first eight fields are required. The remaining ones default to the
    values of the reference homelab setup.
    """

    model_config = ConfigDict(
        alias_generator=_kebab, populate_by_name=True, extra="forbid", validate_default=True
    )

    nas_host: str
    nas_user: str
    nfs_path: str
    nfs_mount: str
    colima_cpu: int
    colima_memory: int
    colima_disk: int
    ollama_model: str

    nfs_network: IPvAnyNetwork = "10.0.0.0/24"
    cluster_name: str = "lab"
    cluster_servers: int = 1
    cluster_ports: list[str] = Field(
        default_factory=lambda: ["80:80@loadbalancer", "443:443@loadbalancer"]
    )

    @property
    def docker_root(self) -> str:
        return self.nfs_mount.rstrip("/") + "/docker"

    def export_spec(self) -> ExportSpec:
        return ExportSpec(
            host=self.nas_host,
            user=self.nas_user,
            export_path=self.nfs_path,
            network=self.nfs_network,
        )

    def mount_spec(self) -> MountSpec:
        return MountSpec(
            server_host=self.nas_host, server_path=self.nfs_path, mount_point=self.nfs_mount
        )

    def runtime_spec(self) -> RuntimeSpec:
        return RuntimeSpec(
            cpu=self.colima_cpu,
            memory=self.colima_memory,
            disk=self.colima_disk,
            mount_path=self.nfs_mount,
            docker_root=self.docker_root,
        )

    def cluster_spec(self) -> ClusterSpec:
        return ClusterSpec(
            name=self.cluster_name, servers=self.cluster_servers, ports=self.cluster_ports
        )

    def serving_spec(self) -> ModelSpec:
        return ModelSpec(model=self.ollama_model)

    @model_validator(mode="after")
    def validate_step_specs(self) -> "LabConfig":
        """Build every step spec once so bad values fail at load time."""
        for build in (
            self.export_spec,
            self.mount_spec,
            self.runtime_spec,
            self.cluster_spec,
            self.serving_spec,
        ):
            try:
                build()
            except PydanticValidationError as e:
                messages = "; ".join(error["msg"] for error in e.errors())
                raise ValueError(f"invalid {e.title}: {messages}")
        return self
