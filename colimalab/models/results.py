"""Data models for provisioning outputs."""

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Step output -> name in the final result set
EXPORTED_OUTPUTS = {
    "nfs-export": {"exportPath": "nfsExportPath"},
    "nfs-mount": {"mountPoint": "nfsMountPoint"},
    "colima": {"status": "colimaStatus"},
    "k3d": {"name": "k3dClusterName", "status": "k3dClusterStatus"},
    "ollama": {"model": "ollamaModel", "status": "ollamaStatus"},
}


class StepResult(BaseModel):
    """Named string outputs of one step, written once.

    ``outputs`` is a read-only view over a private copy, so neither the
    field nor its entries can change after construction.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    outputs: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    changed: bool = False

    @field_validator("outputs", mode="after")
    @classmethod
    def freeze_outputs(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @field_serializer("outputs")
    def serialize_outputs(self, v: Mapping[str, str]) -> dict[str, str]:
        return dict(v)


class PipelineResult(BaseModel):
    """Results of a full provisioning run, in execution order."""

    steps: list[StepResult] = Field(default_factory=list)

    def get(self, name: str) -> StepResult | None:
        return next((s for s in self.steps if s.name == name), None)

    def exports(self) -> dict[str, str]:
        """Flatten step outputs into the final result set."""
        result = {}
        for step in self.steps:
            for key, exported in EXPORTED_OUTPUTS.get(step.name, {}).items():
                if key in step.outputs:
                    result[exported] = step.outputs[key]
        return result
