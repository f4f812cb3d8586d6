"""Provisioning steps for the homelab components."""

from colimalab.steps.base import Step
from colimalab.steps.colima import ColimaStep
from colimalab.steps.k3d import K3dClusterStep
from colimalab.steps.nfs_export import NFSExportStep
from colimalab.steps.nfs_mount import NFSMountStep
from colimalab.steps.ollama import OllamaStep

__all__ = [
    "Step",
    "NFSExportStep",
    "NFSMountStep",
    "ColimaStep",
    "K3dClusterStep",
    "OllamaStep",
]
