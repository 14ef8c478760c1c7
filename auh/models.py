# auh/models.py
"""
Value types shared by the installer: requests, pipeline choice, per-job
results and the per-run summary.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class PipelineChoice(enum.Enum):
    PRIMARY = "primary"
    MIRROR = "mirror"


class JobStatus(enum.Enum):
    SUCCESS = "success"
    ALREADY_INSTALLED = "already-installed"
    INVALID_NAME = "invalid-name"
    NOT_FOUND_UPSTREAM = "not-found-upstream"
    CLONE_FAILURE = "clone-failure"
    BUILD_FAILURE = "build-failure"
    DISPATCH_FAILURE = "dispatch-failure"

    @property
    def ok(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.ALREADY_INSTALLED)


@dataclass(frozen=True)
class PackageRequest:
    name: str
    explicit_mirror: bool = False


@dataclass
class JobResult:
    name: str
    status: JobStatus
    pipeline: Optional[PipelineChoice] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "pipeline": self.pipeline.value if self.pipeline else None,
            "detail": self.detail,
        }


@dataclass
class RunSummary:
    """Aggregate of one scheduler run. Only the scheduler mutates it."""

    run_id: str
    submitted: int = 0
    counts: Dict[JobStatus, int] = field(default_factory=lambda: {s: 0 for s in JobStatus})
    results: List[JobResult] = field(default_factory=list)
    peak_live: int = 0

    def record(self, result: JobResult) -> None:
        self.counts[result.status] += 1
        self.results.append(result)

    @property
    def recorded(self) -> int:
        return sum(self.counts.values())

    @property
    def failed(self) -> int:
        return sum(n for status, n in self.counts.items() if not status.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def failed_names(self) -> List[str]:
        return [r.name for r in self.results if not r.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "submitted": self.submitted,
            "failed": self.failed,
            "ok": self.ok,
            "peak_live": self.peak_live,
            "counts": {s.value: n for s, n in self.counts.items()},
            "results": [r.to_dict() for r in self.results],
        }
