# ============================================================================
# FAKE EXECUTOR
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Infrastructure - In-process executor double
# PURPOSE: EXECUTOR_BACKEND=fake and tests; no processes, no cloud calls
# CREATED: 09 OCT 2026
# ============================================================================
"""
Fake Executor

Behaves like TerraformExecutor without spawning anything:
- initialize() rejects configs that are not JSON, like the real executor
- fail_on makes chosen operations raise ExecutorError
- delays makes chosen operations sleep first (for deadline tests)
- calls records every operation in order

Outputs default to the config's declared "output" block, rendered the way
`terraform output -json` would ({"name": {"value": ...}}).
"""

import asyncio
import json
from typing import Dict, Iterable, List, Optional, Tuple

from core.errors import ExecutorError
from infrastructure.executor import APPLY_SUCCESS, DESTROY_SUCCESS, InfrastructureExecutor

DEFAULT_STATE = b'{"version": 4, "resources": []}'


class FakeExecutor(InfrastructureExecutor):
    """Scriptable InfrastructureExecutor for tests and local runs."""

    def __init__(
        self,
        state: bytes = DEFAULT_STATE,
        outputs: Optional[bytes] = None,
        fail_on: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
        error_message: str = "simulated failure",
    ):
        super().__init__()
        self.canned_state = state
        self.canned_outputs = outputs
        self.fail_on = set(fail_on)
        self.delays = dict(delays or {})
        self.error_message = error_message
        self.calls: List[str] = []
        self.closed = False

    async def _step(self, operation: str) -> None:
        self.calls.append(operation)
        delay = self.delays.get(operation)
        if delay:
            await asyncio.sleep(delay)
        if operation in self.fail_on:
            raise ExecutorError(f"terraform {operation} failed: {self.error_message}", operation=operation)

    async def initialize(self) -> None:
        await self._step("init")
        try:
            json.loads(self._config.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ExecutorError(f"terraform config is not valid JSON: {e}", operation="init") from e

    async def plan(self, destroy: bool = False) -> str:
        await self._step("plan")
        if destroy:
            return "Plan: 0 to add, 0 to change, 1 to destroy."
        return "Plan: 1 to add, 0 to change, 0 to destroy."

    async def apply(self) -> Tuple[bytes, str]:
        await self._step("apply")
        self._state = self.canned_state
        return self._state, APPLY_SUCCESS

    async def destroy(self) -> Tuple[bytes, str]:
        await self._step("destroy")
        return self._state, DESTROY_SUCCESS

    async def outputs(self) -> bytes:
        await self._step("output")
        if self.canned_outputs is not None:
            return self.canned_outputs

        config = json.loads(self._config.decode("utf-8"))
        declared = config.get("output", {}) if isinstance(config, dict) else {}
        rendered = {}
        for name, declaration in declared.items():
            value = declaration.get("value") if isinstance(declaration, dict) else declaration
            rendered[name] = {"sensitive": False, "value": value}
        return json.dumps(rendered).encode("utf-8")

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["FakeExecutor", "DEFAULT_STATE"]
