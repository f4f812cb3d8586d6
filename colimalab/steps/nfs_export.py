"""NFS export on the NAS host, configured over SSH."""

import re
import shlex
from pathlib import PurePosixPath

from colimalab.logging_config import get_logger
from colimalab.models.specs import ExportSpec
from colimalab.runner import CommandRunner
from colimalab.steps.base import Step

logger = get_logger(__name__)

EXPORTS_FILE = "/etc/exports"

# First field of an export line, optionally double-quoted
EXPORT_PATH_PATTERN = re.compile(r'^\s*(?:"([^"]+)"|(\S+))')


def exported_paths(table: str) -> set[str]:
    """Paths exported by an /etc/exports table, ignoring comments."""
    paths = set()
    for line in table.splitlines():
        line = line.split("#", 1)[0]
        match = EXPORT_PATH_PATTERN.match(line)
        if match:
            paths.add(str(PurePosixPath(match.group(1) or match.group(2))))
    return paths


class NFSExportStep(Step):
    """Ensures a directory exists on the NAS and is exported to the LAN."""

    name = "nfs-export"
    description = "Export the NFS share from the NAS"

    def __init__(self, runner: CommandRunner, spec: ExportSpec):
        super().__init__(runner)
        self.spec = spec

    def probe(self) -> bool:
        result = self.runner.run(["cat", EXPORTS_FILE], check=False)
        return result.ok and self.spec.export_path in exported_paths(result.output)

    def apply(self):
        path = self.spec.export_path

        # Fail before touching anything if the NAS is unreachable
        self.runner.check_connection()

        logger.info(f"Creating export directory {path} on {self.runner.label}")
        quoted = shlex.quote(path)
        quoted_docker = shlex.quote(path.rstrip("/") + "/docker")
        self.runner.run_shell(f"mkdir -p {quoted_docker} && chmod 777 {quoted}")

        changed = False
        if self.probe():
            logger.info(f"{path} is already exported, skipping")
        else:
            logger.info(f"Adding {path} to {EXPORTS_FILE} for {self.spec.network}")
            self.runner.run_shell(
                f"echo {shlex.quote(self.spec.export_line)} >> {EXPORTS_FILE}"
            )
            self.runner.run(["exportfs", "-ra"])
            changed = True

        return self.result(changed, exportPath=path)
