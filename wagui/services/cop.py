"""Checklist completion gate ("cop") and the clear-gating rule.

A work item (PBI) is done when its ADR and PBI files have been archived,
its acceptance criteria are all ticked, and the project-wide lint, tests
and git checks pass. Every check runs even after an earlier failure so the
report lists everything that needs fixing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from wagui.core.logging import get_logger
from wagui.db.types import new_id, now_ms
from wagui.schemas import CompletionSession
from wagui.services.commands import head_lines, run_command
from wagui.services.store import MessageStore

logger = get_logger(__name__)

FAILURE_OUTPUT_LINES = 5

_UNCHECKED_RE = re.compile(r"- \[ \]")
_CHECKED_RE = re.compile(r"- \[x\]", re.IGNORECASE)


def wag_dir(app_root: str | Path) -> Path:
    return Path(app_root) / ".wag"


def adr_dir(app_root: str | Path, stage: str) -> Path:
    """``stage`` is "active" or "completed"."""
    return wag_dir(app_root) / "adr" / stage


def completed_pbi_path(app_root: str | Path, pbi: str) -> Path:
    return wag_dir(app_root) / "backlog" / "_completed" / f"{pbi}.md"


def find_adr(directory: Path, pbi: str) -> Path | None:
    """First ``<pbi>*.md`` in ``directory``, by name."""
    if not directory.is_dir():
        return None
    for entry in sorted(directory.iterdir()):
        if entry.is_file() and entry.name.startswith(pbi) and entry.name.endswith(".md"):
            return entry
    return None


@dataclass(frozen=True)
class CheckResult:
    passed: bool
    message: str | None = None


@runtime_checkable
class WorkItemCheck(Protocol):
    """A check scoped to one work item."""

    async def run(self, app_root: Path, pbi: str) -> CheckResult: ...


@runtime_checkable
class ProjectCheck(Protocol):
    """A project-wide check that takes no work item."""

    async def run(self, app_root: Path) -> CheckResult: ...


# ---------------------------------------------------------------------------
# Work-item checks
# ---------------------------------------------------------------------------
class AdrArchivedCheck:
    async def run(self, app_root: Path, pbi: str) -> CheckResult:
        completed = adr_dir(app_root, "completed")
        if not completed.is_dir():
            return CheckResult(False, f"ADR completed directory not found: {completed}")
        if find_adr(completed, pbi) is None:
            return CheckResult(False, f"ADR not found in adr/completed/{pbi}*.md")
        return CheckResult(True)


class PbiArchivedCheck:
    async def run(self, app_root: Path, pbi: str) -> CheckResult:
        if not completed_pbi_path(app_root, pbi).is_file():
            return CheckResult(False, f"PBI not found in backlog/_completed/{pbi}.md")
        return CheckResult(True)


class CriteriaCompleteCheck:
    async def run(self, app_root: Path, pbi: str) -> CheckResult:
        path = completed_pbi_path(app_root, pbi)
        if not path.is_file():
            return CheckResult(False, "Cannot check criteria - PBI file not found")

        content = path.read_text(encoding="utf-8")
        unchecked = len(_UNCHECKED_RE.findall(content))
        checked = len(_CHECKED_RE.findall(content))

        if unchecked > 0:
            return CheckResult(
                False,
                f"Acceptance criteria not complete: {unchecked} of {unchecked + checked} unchecked",
            )
        if checked == 0:
            return CheckResult(False, "No acceptance criteria found in PBI")
        return CheckResult(True)


# ---------------------------------------------------------------------------
# Project checks
# ---------------------------------------------------------------------------
class CommandCheck:
    """Passes when ``command`` exits 0 in the app root."""

    def __init__(self, label: str, command: str, timeout: float | None = None):
        self.label = label
        self.command = command
        self.timeout = timeout

    async def run(self, app_root: Path) -> CheckResult:
        result = await run_command(self.command, cwd=app_root, timeout=self.timeout)
        if result.ok:
            return CheckResult(True)
        output = result.output or f"Unknown {self.label.lower()} error"
        return CheckResult(False, f"{self.label} failed: {head_lines(output, FAILURE_OUTPUT_LINES)}")


class GitCleanCheck:
    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    async def run(self, app_root: Path) -> CheckResult:
        result = await run_command("git status --porcelain", cwd=app_root, timeout=self.timeout)
        if not result.ok:
            return CheckResult(False, f"Git check failed: {result.output.strip() or result.returncode}")
        dirty = result.stdout.strip()
        if dirty:
            files = dirty.split("\n")[:FAILURE_OUTPUT_LINES]
            return CheckResult(False, f"Git status not clean: {', '.join(files)}")
        return CheckResult(True)


@dataclass
class CheckPlan:
    work_item_checks: list[WorkItemCheck] = field(default_factory=list)
    project_checks: list[ProjectCheck] = field(default_factory=list)


def default_plan(lint_command: str, test_command: str, timeout: float | None = None) -> CheckPlan:
    return CheckPlan(
        work_item_checks=[AdrArchivedCheck(), PbiArchivedCheck(), CriteriaCompleteCheck()],
        project_checks=[
            CommandCheck("Lint", lint_command, timeout),
            CommandCheck("Tests", test_command, timeout),
            GitCleanCheck(timeout),
        ],
    )


@dataclass(frozen=True)
class CopResult:
    passed: bool
    failures: list[str]
    session_id: str

    def to_wire(self) -> dict:
        return {"passed": self.passed, "failures": list(self.failures), "sessionId": self.session_id}


@dataclass(frozen=True)
class ClearDecision:
    allowed: bool
    reason: str | None = None


class CompletionGate:
    def __init__(self, store: MessageStore, plan: CheckPlan):
        self._store = store
        self._plan = plan

    async def run_cop(self, app: str, app_root: str | Path, pbi: str, plan: CheckPlan | None = None) -> CopResult:
        plan = plan or self._plan
        root = Path(app_root)
        session_id = new_id()
        failures: list[str] = []
        passed = True

        for check in plan.work_item_checks:
            result = await check.run(root, pbi)
            if not result.passed:
                passed = False
                failures.append(result.message or f"{type(check).__name__} failed")

        for check in plan.project_checks:
            result = await check.run(root)
            if not result.passed:
                passed = False
                failures.append(result.message or f"{type(check).__name__} failed")

        now = now_ms()
        await self._store.save_completion_session(
            CompletionSession(
                id=session_id,
                app=app,
                pbi=pbi,
                passed=passed,
                failures=failures,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(
            "Cop run finished",
            data={"app": app, "pbi": pbi, "passed": passed, "failures": len(failures), "session_id": session_id},
        )
        return CopResult(passed=passed, failures=failures, session_id=session_id)

    async def can_clear(self, app: str, pbi: str | None) -> ClearDecision:
        if not pbi:
            return ClearDecision(True)

        latest = await self._store.get_latest_completion_session(app, pbi)
        if latest is None:
            return ClearDecision(False, "wag_cop must pass before wag_clear. Call wag_cop first.")
        if not latest.passed:
            return ClearDecision(
                False,
                f"wag_cop failed. Fix issues and run wag_cop again. Failures: {'; '.join(latest.failures)}",
            )
        return ClearDecision(True)
