"""Colima container runtime backed by the NFS mount."""

import json
import shlex

from colimalab.logging_config import get_logger
from colimalab.models.specs import RuntimeSpec
from colimalab.runner import CommandRunner
from colimalab.steps.base import Step
from colimalab.steps.brew import brew_install

logger = get_logger(__name__)


class ColimaStep(Step):
    """Clean reinstall of Colima and the Docker CLI.

    Colima cannot be reconfigured in place, so every run stops the VM, moves
    the old state aside, reinstalls both packages and starts fresh.
    """

    name = "colima"
    description = "Reinstall Colima with Docker data on the NFS mount"

    def __init__(self, runner: CommandRunner, spec: RuntimeSpec):
        super().__init__(runner)
        self.spec = spec

    def probe(self) -> bool:
        return self.runner.run(["colima", "status"], check=False).ok

    def apply(self):
        spec = self.spec

        logger.info("Stopping any running Colima instance")
        self.runner.run(["colima", "stop"], check=False)

        self.runner.backup_dir(spec.state_dir)
        self.runner.run(["brew", "uninstall", "colima"], check=False)
        self.runner.run(["brew", "uninstall", "docker"], check=False)
        self.runner.remove_tree(spec.lima_dir)

        brew_install(self.runner, "colima")
        brew_install(self.runner, "docker")

        logger.info(
            f"Starting Colima with {spec.cpu} CPUs, {spec.memory}GiB memory, {spec.disk}GiB disk"
        )
        self.runner.run(
            [
                "colima",
                "start",
                "--cpu",
                str(spec.cpu),
                "--memory",
                str(spec.memory),
                "--disk",
                str(spec.disk),
                "--vm-type",
                "vz",
                "--mount-type",
                "virtiofs",
                "--mount",
                f"{spec.mount_path}:w",
            ]
        )

        logger.info(f"Setting Docker data-root to {spec.docker_root}")
        script = (
            f"sudo mkdir -p /etc/docker && echo {shlex.quote(spec.daemon_json)} "
            "| sudo tee /etc/docker/daemon.json && sudo systemctl restart docker"
        )
        self.runner.run(["colima", "ssh", "--", script])

        info = self.runner.run(["docker", "info", "--format", "{{json .}}"])
        if not self.data_root_configured(info.output):
            logger.warning(
                f"Docker data-root may not be configured correctly (expected {spec.docker_root})"
            )

        return self.result(True, status="running")

    def data_root_configured(self, info_output: str) -> bool:
        """Check docker info output for the configured data-root."""
        try:
            info = json.loads(info_output)
        except json.JSONDecodeError:
            return self.spec.docker_root in info_output

        if isinstance(info, dict) and "DockerRootDir" in info:
            return info["DockerRootDir"] == self.spec.docker_root
        return self.spec.docker_root in info_output

    def teardown(self) -> None:
        logger.info("Stopping Colima")
        self.runner.run(["colima", "stop"], check=False)
