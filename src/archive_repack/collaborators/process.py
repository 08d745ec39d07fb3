"""Blocking invocation of external collaborator programs."""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Any, Sequence

from archive_repack.errors import ERRORS_BY_STAGE, PipelineError
from archive_repack.stages import Stage

LOGGER = logging.getLogger(__name__)

OUTPUT_TAIL_CHARS = 2000


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one collaborator step."""

    stage: Stage
    ok: bool
    command: tuple[str, ...] = ()
    exit_code: int | None = None
    duration_seconds: float = 0.0
    timed_out: bool = False
    detail: str | None = None

    @classmethod
    def failed(cls, stage: Stage, detail: str, **kwargs: Any) -> "StepResult":
        return cls(stage=stage, ok=False, detail=detail, **kwargs)

    def to_error(self) -> PipelineError:
        """Build the stage-specific error for a failed result."""

        if self.ok:
            raise ValueError(f"step {self.stage.value} succeeded; there is no error to build")
        error_cls = ERRORS_BY_STAGE[self.stage]
        return error_cls(self.detail or f"{self.stage.value} step failed", exit_code=self.exit_code)

    def as_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "ok": self.ok,
            "command": list(self.command),
            "exit_code": self.exit_code,
            "duration_seconds": round(self.duration_seconds, 3),
            "timed_out": self.timed_out,
            "detail": self.detail,
        }


def _tail(text: str | bytes | None) -> str:
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    text = text.strip()
    return text[-OUTPUT_TAIL_CHARS:]


def run_tool(
    stage: Stage,
    command: Sequence[str],
    *,
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> StepResult:
    """Run ``command`` to completion and report its exit status as a :class:`StepResult`.

    A missing executable or an expired timeout is a failed result; on timeout
    the child is killed before returning.
    """

    effective_logger = logger or LOGGER
    argv = tuple(str(part) for part in command)
    effective_logger.info("collaborator.start stage=%s command=%s", stage.value, " ".join(argv))
    started_mono = time.monotonic()

    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        duration = time.monotonic() - started_mono
        effective_logger.error(
            "collaborator.timeout stage=%s timeout_s=%s stderr=%s",
            stage.value,
            timeout,
            _tail(exc.stderr),
        )
        return StepResult.failed(
            stage,
            f"{argv[0]} timed out after {timeout}s",
            command=argv,
            duration_seconds=duration,
            timed_out=True,
        )
    except OSError as exc:
        duration = time.monotonic() - started_mono
        effective_logger.error("collaborator.launch_failed stage=%s executable=%s error=%s", stage.value, argv[0], exc)
        return StepResult.failed(
            stage,
            f"could not launch {argv[0]}: {exc}",
            command=argv,
            duration_seconds=duration,
        )

    duration = time.monotonic() - started_mono
    stdout_tail = _tail(completed.stdout)
    stderr_tail = _tail(completed.stderr)
    if stdout_tail:
        effective_logger.debug("collaborator.stdout stage=%s\n%s", stage.value, stdout_tail)
    if stderr_tail:
        effective_logger.debug("collaborator.stderr stage=%s\n%s", stage.value, stderr_tail)

    if completed.returncode != 0:
        effective_logger.error(
            "collaborator.failed stage=%s exit_code=%s duration_s=%.3f stderr=%s",
            stage.value,
            completed.returncode,
            duration,
            stderr_tail or "<empty>",
        )
        return StepResult.failed(
            stage,
            f"{argv[0]} exited with status {completed.returncode}",
            command=argv,
            exit_code=completed.returncode,
            duration_seconds=duration,
        )

    effective_logger.info("collaborator.done stage=%s duration_s=%.3f", stage.value, duration)
    return StepResult(
        stage=stage,
        ok=True,
        command=argv,
        exit_code=0,
        duration_seconds=duration,
    )
