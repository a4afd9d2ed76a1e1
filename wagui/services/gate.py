"""Streaming gate: lint, then tests, then hand-off context for review.

Each phase is announced on the ``gate`` event channel so a live UI can show
progress. The gate does not render the final review verdict; on success it
publishes the working-tree diff and the work item's ADR for whoever reviews.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from wagui.core.logging import get_logger
from wagui.db.types import new_id
from wagui.services.commands import head_lines, run_command
from wagui.services.cop import adr_dir, find_adr

logger = get_logger(__name__)

GATE_EVENT = "gate"

Publish = Callable[[str, Any], Any]


@dataclass(frozen=True)
class GateResult:
    passed: bool
    cop_passed: bool
    cop_output: str
    failures: list[str] = field(default_factory=list)
    session_id: str = ""

    def to_wire(self) -> dict:
        return {
            "passed": self.passed,
            "copPassed": self.cop_passed,
            "copOutput": self.cop_output,
            "failures": list(self.failures),
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class _Phase:
    step: str
    label: str
    command: str
    failure_lines: int


def read_adr(app_root: str | Path, pbi: str) -> str | None:
    """ADR text for ``pbi``: active directory first, then completed."""
    for stage in ("active", "completed"):
        path = find_adr(adr_dir(app_root, stage), pbi)
        if path is not None:
            return path.read_text(encoding="utf-8")
    return None


class StreamingGate:
    def __init__(
        self,
        publish: Publish,
        lint_command: str,
        test_command: str,
        timeout: float | None = None,
    ):
        self._publish = publish
        self._phases = (
            _Phase("lint", "Lint", lint_command, 5),
            _Phase("tests", "Tests", test_command, 10),
        )
        self._timeout = timeout

    async def _git_diff(self, app_root: Path) -> str:
        result = await run_command("git diff HEAD", cwd=app_root, timeout=self._timeout)
        if not result.ok:
            return "(failed to get diff)"
        return result.stdout or "(no changes)"

    async def run_gate(self, app_root: str | Path, pbi: str) -> GateResult:
        root = Path(app_root)
        session_id = new_id()
        failures: list[str] = []
        outputs: list[str] = []

        for phase in self._phases:
            self._publish(GATE_EVENT, {"type": "cop-start", "step": phase.step, "pbi": pbi, "sessionId": session_id})
            result = await run_command(phase.command, cwd=root, timeout=self._timeout)
            if result.ok:
                output = result.stdout or f"{phase.label} passed"
            else:
                output = result.output or f"Unknown {phase.label.lower()} error"
                failures.append(f"{phase.label} failed: {head_lines(output, phase.failure_lines)}")
            outputs.append(f"=== {phase.step.upper()} ===\n{output}")
            self._publish(
                GATE_EVENT,
                {
                    "type": "cop-step",
                    "step": phase.step,
                    "passed": result.ok,
                    "output": output,
                    "sessionId": session_id,
                },
            )

        cop_passed = not failures
        cop_output = "\n\n".join(outputs)
        self._publish(
            GATE_EVENT,
            {
                "type": "cop-complete",
                "pbi": pbi,
                "passed": cop_passed,
                "failures": failures,
                "output": cop_output,
                "sessionId": session_id,
            },
        )
        logger.info("Gate automated phases finished", data={"pbi": pbi, "passed": cop_passed, "session_id": session_id})

        if not cop_passed:
            return GateResult(
                passed=False,
                cop_passed=False,
                cop_output=cop_output,
                failures=failures,
                session_id=session_id,
            )

        diff = await self._git_diff(root)
        adr = read_adr(root, pbi)
        self._publish(
            GATE_EVENT,
            {"type": "architect-ready", "pbi": pbi, "diff": diff, "adr": adr, "sessionId": session_id},
        )

        return GateResult(
            passed=True,
            cop_passed=True,
            cop_output=cop_output,
            failures=[],
            session_id=session_id,
        )
