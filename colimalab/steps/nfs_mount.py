"""NFS mount of the NAS share on the workstation."""

from colimalab.logging_config import get_logger
from colimalab.models.specs import MountSpec
from colimalab.runner import CommandRunner
from colimalab.steps.base import Step

logger = get_logger(__name__)


class NFSMountStep(Step):
    """Ensures the NAS export is mounted at the local mount point."""

    name = "nfs-mount"
    description = "Mount the NFS share on the workstation"

    def __init__(self, runner: CommandRunner, spec: MountSpec):
        super().__init__(runner)
        self.spec = spec

    def probe(self) -> bool:
        result = self.runner.run(["mount"], check=False)
        return result.ok and self.spec.mount_point in result.output

    def apply(self):
        mount_point = self.spec.mount_point
        self.runner.make_dirs(mount_point)

        changed = False
        if self.probe():
            logger.info(f"{mount_point} is already mounted, skipping")
        else:
            logger.info(f"Mounting {self.spec.source} at {mount_point}")
            self.runner.run(
                ["mount", "-t", "nfs", "-o", "resvport,rw,noatime", self.spec.source, mount_point]
            )
            changed = True

        # Informational only
        table = self.runner.run(["mount"], check=False)
        for line in table.output.splitlines():
            if mount_point in line:
                logger.debug(f"Mount table entry: {line}")

        return self.result(changed, mountPoint=mount_point)

    def teardown(self) -> None:
        if not self.probe():
            logger.info(f"{self.spec.mount_point} is not mounted")
            return
        logger.info(f"Unmounting {self.spec.mount_point}")
        self.runner.run(["umount", self.spec.mount_point])
