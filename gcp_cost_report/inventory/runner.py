"""
Command execution for inventory queries.

Runs read-only gcloud/kubectl commands and parses their output.
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

# Values gcloud prints when no project is configured
_UNSET_VALUES = {"", "(unset)"}


@dataclass(frozen=True)
class ProjectContext:
    """Everything a collector needs to know about where to query.

    Passed explicitly into every collector instead of relying on the
    ambient gcloud configuration.
    """
    project_id: str
    gcloud_bin: str = "gcloud"
    kubectl_bin: str = "kubectl"
    timeout_seconds: float = 60.0

    def __post_init__(self):
        if not self.project_id or not self.project_id.strip():
            raise ValueError("project_id is required and cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")


class CommandRunner:
    """Runs a command and returns its output, or None if it failed.

    A failed command is never an exception here: callers turn None into
    a degraded result.
    """

    def __init__(self, timeout_seconds: float = 60.0):
        self.timeout_seconds = timeout_seconds

    def run_text(self, args: List[str]) -> Optional[str]:
        """Run a command and return its stdout.

        Args:
            args: Command and arguments

        Returns:
            Captured stdout, or None on non-zero exit, missing binary or timeout
        """
        logger.debug("Running %s", " ".join(args))
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=True,
            )
        except FileNotFoundError:
            logger.warning("Command not found: %s", args[0])
            return None
        except subprocess.TimeoutExpired:
            logger.warning("Timed out after %ss: %s", self.timeout_seconds, " ".join(args))
            return None
        except subprocess.CalledProcessError as e:
            logger.debug("Exit status %s from %s: %s", e.returncode, " ".join(args), (e.stderr or "").strip())
            return None
        return completed.stdout

    def run_json(self, args: List[str]) -> Optional[Any]:
        """Run a command that prints JSON and return the parsed document."""
        output = self.run_text(args)
        if output is None:
            return None
        if not output.strip():
            # gcloud prints nothing for an empty list in some versions
            return []
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            logger.warning("Malformed JSON from %s: %s", " ".join(args), e)
            return None


def resolve_project_id(
    explicit: Optional[str],
    runner: CommandRunner,
    gcloud_bin: str = "gcloud",
) -> Optional[str]:
    """Pick the project to report on.

    An explicit project wins; otherwise the active gcloud configuration
    is consulted.

    Returns:
        Project id, or None if nothing usable is configured
    """
    if explicit and explicit.strip():
        return explicit.strip()

    output = runner.run_text([gcloud_bin, "config", "get-value", "project"])
    if output is None:
        return None
    value = output.strip()
    if value in _UNSET_VALUES:
        return None
    return value
