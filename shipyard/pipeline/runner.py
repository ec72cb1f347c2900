from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from shipyard.core.colors import Fore, Style, color_text
from shipyard.core.errors import ShipyardError, describe

SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass(frozen=True)
class Stage:
    name: str
    run: Callable[[], object]
    needs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StageResult:
    name: str
    status: str
    error: Optional[str] = None
    duration: float = 0.0
    returncode: int = 0

    @property
    def ok(self) -> bool:
        return self.status == SUCCEEDED


def _validate(stages: Sequence[Stage]) -> None:
    seen: set[str] = set()
    for stage in stages:
        if stage.name in seen:
            raise ValueError(f"Duplicate stage name: {stage.name}")
        unknown = [n for n in stage.needs if n not in seen]
        if unknown:
            # needs must point backwards: stages run in declaration order
            raise ValueError(
                f"Stage '{stage.name}' needs {', '.join(unknown)}, "
                "which is not declared before it"
            )
        seen.add(stage.name)


def run_pipeline(
    stages: Sequence[Stage],
    *,
    redact: Optional[Callable[[str], str]] = None,
    clock: Callable[[], float] = time.monotonic,
) -> List[StageResult]:
    """
    Run stages strictly in order, one at a time.

    A stage runs only if every stage it needs succeeded; otherwise it is
    reported as skipped. A failure does not stop unrelated later stages.
    """
    _validate(stages)
    results: Dict[str, StageResult] = {}

    for stage in stages:
        blocked = [n for n in stage.needs if not results[n].ok]
        if blocked:
            results[stage.name] = StageResult(
                stage.name, SKIPPED, error=f"needs {', '.join(blocked)}"
            )
            print(color_text(f"\n⏭️  {stage.name}: skipped ({', '.join(blocked)} did not succeed)\n", Fore.YELLOW))
            continue

        print(color_text(f"\n===== stage: {stage.name} =====\n", Fore.CYAN + Style.BRIGHT))
        start = clock()
        try:
            stage.run()
        except ShipyardError as exc:
            msg = describe(exc, redact)
            results[stage.name] = StageResult(
                stage.name,
                FAILED,
                error=msg,
                duration=clock() - start,
                returncode=getattr(exc, "returncode", 1),
            )
            print(color_text(f"\n[ERROR] {msg}\n", Fore.RED))
            continue
        except subprocess.CalledProcessError as exc:
            results[stage.name] = StageResult(
                stage.name,
                FAILED,
                error=f"command exited with status {exc.returncode}",
                duration=clock() - start,
                returncode=exc.returncode,
            )
            continue

        results[stage.name] = StageResult(stage.name, SUCCEEDED, duration=clock() - start)

    return [results[s.name] for s in stages]


def format_summary(results: Sequence[StageResult]) -> str:
    width = max([len(r.name) for r in results] + [5])
    lines = [f"{'stage':<{width}}  {'status':<9}  duration"]
    for r in results:
        line = f"{r.name:<{width}}  {r.status:<9}  {r.duration:7.1f}s"
        if r.error:
            line += f"  ({r.error.splitlines()[0]})"
        lines.append(line)
    return "\n".join(lines)


def exit_code(results: Sequence[StageResult]) -> int:
    for r in results:
        if r.status == FAILED:
            return r.returncode or 1
    return 1 if any(r.status == SKIPPED for r in results) else 0
