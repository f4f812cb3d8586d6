"""Data models for homelab configuration and provisioning results."""

from colimalab.models.lab import LabConfig
from colimalab.models.results import PipelineResult, StepResult
from colimalab.models.specs import ClusterSpec, ExportSpec, ModelSpec, MountSpec, RuntimeSpec

__all__ = [
    "LabConfig",
    "ExportSpec",
    "MountSpec",
    "RuntimeSpec",
    "ClusterSpec",
    "ModelSpec",
    "StepResult",
    "PipelineResult",
]
