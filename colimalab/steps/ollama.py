"""Ollama model server and the model it serves."""

import time

from colimalab.logging_config import get_logger
from colimalab.models.specs import ModelSpec
from colimalab.runner import CommandRunner
from colimalab.steps.base import Step
from colimalab.steps.brew import ensure_installed

logger = get_logger(__name__)


class OllamaStep(Step):
    """Installs Ollama, starts its service and pulls the requested model."""

    name = "ollama"
    description = "Install Ollama and pull the model"

    def __init__(self, runner: CommandRunner, spec: ModelSpec):
        super().__init__(runner)
        self.spec = spec

    def probe(self) -> bool:
        return self.model_listed()

    def model_listed(self) -> bool:
        """Check ``ollama list`` for the base model name, ignoring the tag."""
        result = self.runner.run(["ollama", "list"], check=False)
        return result.ok and self.spec.base_name in result.output

    def wait_for_api(self) -> bool:
        """Poll the tags endpoint until the daemon answers.

        Returns:
            True if the API answered within the allowed attempts
        """
        url = f"{self.spec.api_url.rstrip('/')}/api/tags"
        attempts = self.spec.poll_attempts
        for attempt in range(1, attempts + 1):
            body = self.runner.http_get(url, timeout=2.0)
            if body is not None and "models" in body:
                logger.debug(f"Ollama API ready after {attempt} attempt(s)")
                return True
            if attempt < attempts:
                time.sleep(self.spec.poll_interval)

        logger.warning(f"Ollama API at {url} did not respond after {attempts} attempts")
        return False

    def apply(self):
        spec = self.spec
        ensure_installed(self.runner, "ollama")

        # May already be running
        self.runner.run(["brew", "services", "start", "ollama"], check=False)
        self.wait_for_api()

        changed = False
        if self.model_listed():
            logger.info(f"Model {spec.base_name} is already present, skipping pull")
        else:
            logger.info(f"Pulling model {spec.model} (this may take a while)...")
            self.runner.run(["ollama", "pull", spec.model])
            changed = True

        status = "ready" if self.model_listed() else "model not found"
        if status != "ready":
            logger.warning(f"Model {spec.model} not listed after pull")

        return self.result(changed, model=spec.model, status=status)

    def teardown(self) -> None:
        logger.info("Stopping the Ollama service")
        self.runner.run(["brew", "services", "stop", "ollama"], check=False)
