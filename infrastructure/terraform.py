# ============================================================================
# TERRAFORM EXECUTOR
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Infrastructure - Production executor
# PURPOSE: Drive the terraform CLI in a private workspace per workflow
# CREATED: 09 OCT 2026
# ============================================================================
"""
Terraform Executor

Each instance owns a temporary workspace holding:
    main.tf.json       - the cluster's terraform_config
    terraform.tfstate  - the stored state (destroy) or the state apply wrote

Commands run non-interactively via asyncio.create_subprocess_exec. If the
awaiting task is cancelled (workflow deadline, shutdown) the child process
is killed before the cancellation propagates.

Project and region reach the providers through environment variables
(GOOGLE_PROJECT, GOOGLE_REGION, CLOUDSDK_CORE_PROJECT); credentials are
whatever the process environment already carries.
"""

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from core.errors import ExecutorError
from core.logging import ComponentType, get_logger
from infrastructure.executor import APPLY_SUCCESS, DESTROY_SUCCESS, InfrastructureExecutor

CONFIG_FILE = "main.tf.json"
STATE_FILE = "terraform.tfstate"

# Characters of stderr kept in error messages
STDERR_TAIL = 1500

_COMMON_FLAGS = ["-input=false", "-no-color"]


class TerraformExecutor(InfrastructureExecutor):
    """InfrastructureExecutor backed by the terraform binary."""

    def __init__(self, binary: str = "terraform", work_root: Optional[str] = None, logger=None):
        super().__init__()
        self.binary = binary
        self.work_root = work_root
        self.logger = logger or get_logger(__name__, ComponentType.EXECUTOR)
        self._workdir: Optional[Path] = None

    @property
    def workdir(self) -> Optional[Path]:
        return self._workdir

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def initialize(self) -> None:
        try:
            json.loads(self._config.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ExecutorError(f"terraform config is not valid JSON: {e}", operation="init") from e

        workdir = self._ensure_workdir()
        (workdir / CONFIG_FILE).write_bytes(self._config)
        if self._state:
            (workdir / STATE_FILE).write_bytes(self._state)

        await self._run("init", ["init", *_COMMON_FLAGS])

    async def plan(self, destroy: bool = False) -> str:
        args = ["plan", *_COMMON_FLAGS]
        if destroy:
            args.append("-destroy")
        stdout = await self._run("plan", args)
        return self._plan_summary(stdout)

    async def apply(self) -> Tuple[bytes, str]:
        await self._run("apply", ["apply", *_COMMON_FLAGS, "-auto-approve"])
        return self._read_state(), APPLY_SUCCESS

    async def destroy(self) -> Tuple[bytes, str]:
        await self._run("destroy", ["destroy", *_COMMON_FLAGS, "-auto-approve"])
        return self._read_state(), DESTROY_SUCCESS

    async def outputs(self) -> bytes:
        stdout = await self._run("output", ["output", "-json", "-no-color"])
        return stdout.strip() or b"{}"

    async def close(self) -> None:
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self.logger.debug(f"Removed workspace {self._workdir}")
            self._workdir = None

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _ensure_workdir(self) -> Path:
        if self._workdir is None:
            if self.work_root:
                os.makedirs(self.work_root, exist_ok=True)
            self._workdir = Path(tempfile.mkdtemp(prefix="cluster-", dir=self.work_root))
            self.logger.debug(f"Created workspace {self._workdir}")
        return self._workdir

    def _read_state(self) -> bytes:
        state_path = self._ensure_workdir() / STATE_FILE
        if not state_path.exists():
            return b""
        return state_path.read_bytes()

    def _environment(self) -> dict:
        env = dict(os.environ)
        env["TF_IN_AUTOMATION"] = "1"
        if self._project:
            env["GOOGLE_PROJECT"] = self._project
            env["CLOUDSDK_CORE_PROJECT"] = self._project
        if self._region:
            env["GOOGLE_REGION"] = self._region
        return env

    @staticmethod
    def _plan_summary(stdout: bytes) -> str:
        lines = [line.strip() for line in stdout.decode("utf-8", errors="replace").splitlines()]
        for line in lines:
            if line.startswith("Plan:") or line.startswith("No changes."):
                return line
        non_empty = [line for line in lines if line]
        return non_empty[-1] if non_empty else "plan complete"

    async def _run(self, operation: str, args: List[str]) -> bytes:
        """
        Run one terraform command in the workspace.

        Returns:
            stdout bytes

        Raises:
            ExecutorError on spawn failure or non-zero exit
        """
        workdir = self._ensure_workdir()
        self.logger.info(f"Running: {self.binary} {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                cwd=str(workdir),
                env=self._environment(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutorError(f"terraform {operation} could not start: {e}", operation=operation) from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            self.logger.warning(f"terraform {operation} cancelled, process killed")
            raise

        if process.returncode != 0:
            tail = stderr.decode("utf-8", errors="replace").strip()[-STDERR_TAIL:]
            raise ExecutorError(
                f"terraform {operation} failed (exit {process.returncode}): {tail}",
                operation=operation,
            )

        return stdout


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["TerraformExecutor", "CONFIG_FILE", "STATE_FILE"]
