# auh/scheduler.py
# -*- coding: utf-8 -*-
"""
scheduler.py - bounded-concurrency installer for a batch of packages

Responsibilities:
 - Validate every requested name before anything is started
 - Resolve the pipeline (primary / mirror) per request from the batch probe
 - Keep at most `cap` build jobs live, each in its own worker process
 - Refill a slot as soon as any job finishes (never batch by batch)
 - Fold every job's JobResult into a RunSummary

Notes:
 - The pool executor is created per run; tests pass a thread-based factory.
 - Worker processes receive the parent's Config so an explicit --config
   applies to them as well.
 - There is no per-job timeout: a hung makepkg keeps its slot.
"""

from __future__ import annotations

import uuid
from collections import deque
from concurrent.futures import (
    FIRST_COMPLETED,
    BrokenExecutor,
    Executor,
    Future,
    ProcessPoolExecutor,
    wait,
)
from pathlib import Path
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from auh import config, names
from auh.buildsystem import run_job
from auh.config import get_config
from auh.logging import get_logger
from auh.models import JobResult, JobStatus, PackageRequest, PipelineChoice, RunSummary
from auh.probe import probe
from auh.resolver import resolve

logger = get_logger("scheduler")

DEFAULT_CAP = 4

JobFn = Callable[[PackageRequest, PipelineChoice, str], JobResult]
ExecutorFactory = Callable[[int], Executor]


def _init_worker(cfg: config.Config) -> None:
    config.set_config(cfg)


def process_pool(cap: int) -> Executor:
    return ProcessPoolExecutor(max_workers=cap, initializer=_init_worker, initargs=(get_config(),))


def _uid() -> str:
    return uuid.uuid4().hex[:8]


class Scheduler:
    def __init__(
        self,
        cap: Optional[int] = None,
        *,
        job: JobFn = run_job,
        executor_factory: Optional[ExecutorFactory] = None,
        workdir: Optional[str] = None,
        run_id: Optional[str] = None,
    ):
        if cap is None:
            cap = int(get_config().get("install.jobs", DEFAULT_CAP))
        if cap < 1:
            raise ValueError(f"concurrency cap must be >= 1, got {cap}")
        self.cap = cap
        self.job = job
        self.executor_factory = executor_factory or process_pool
        self.workdir = Path(workdir or get_config().get("install.workdir"))
        self.run_id = run_id or f"run-{_uid()}"

    def scratch_dir(self, seq: int, name: str) -> str:
        """Unique per job: run id + admission sequence + package name."""
        return str(self.workdir / f"{self.run_id}-{seq}-{name}")

    def _open_executor(self) -> Optional[Executor]:
        try:
            return self.executor_factory(self.cap)
        except (OSError, RuntimeError, ValueError) as e:
            logger.error("Cannot create worker pool: %s", e)
            return None

    def _collect(self, fut: Future, req: PackageRequest, pipeline: PipelineChoice) -> JobResult:
        try:
            res = fut.result()
        except BrokenExecutor as e:
            logger.error("Worker for %s died: %s", req.name, e)
            return JobResult(req.name, JobStatus.DISPATCH_FAILURE, pipeline, str(e))
        except Exception as e:
            logger.error("Worker for %s failed: %s", req.name, e)
            return JobResult(req.name, JobStatus.BUILD_FAILURE, pipeline, str(e))
        if not isinstance(res, JobResult):
            logger.error("Worker for %s returned %r", req.name, res)
            return JobResult(req.name, JobStatus.BUILD_FAILURE, pipeline, "no job result")
        return res

    def run(self, requests: Iterable[PackageRequest], probe_up: bool = True) -> RunSummary:
        requests = list(requests)
        summary = RunSummary(run_id=self.run_id, submitted=len(requests))
        pending: Deque[PackageRequest] = deque(requests)
        live: Dict[Future, Tuple[PackageRequest, PipelineChoice]] = {}
        seq = 0
        logger.debug("Scheduling %d package(s) run_id=%s cap=%s", len(requests), self.run_id, self.cap)

        executor = self._open_executor()
        try:
            while pending or live:
                # admit while slots are free
                while pending and len(live) < self.cap:
                    req = pending.popleft()
                    if not names.validate(req.name):
                        logger.error("Invalid package name: %r", req.name)
                        summary.record(JobResult(req.name, JobStatus.INVALID_NAME))
                        continue
                    pipeline = resolve(probe_up, req.explicit_mirror)
                    if executor is None:
                        summary.record(JobResult(req.name, JobStatus.DISPATCH_FAILURE, pipeline, "no worker pool"))
                        continue
                    seq += 1
                    try:
                        fut = executor.submit(self.job, req, pipeline, self.scratch_dir(seq, req.name))
                    except (RuntimeError, OSError) as e:
                        logger.error("Failed to start worker for package: %s (%s)", req.name, e)
                        summary.record(JobResult(req.name, JobStatus.DISPATCH_FAILURE, pipeline, str(e)))
                        continue
                    live[fut] = (req, pipeline)
                    summary.peak_live = max(summary.peak_live, len(live))

                if not live:
                    continue
                # block until any worker finishes, then refill
                done, _ = wait(list(live), return_when=FIRST_COMPLETED)
                for fut in done:
                    req, pipeline = live.pop(fut)
                    res = self._collect(fut, req, pipeline)
                    summary.record(res)
                    logger.debug("%s finished: %s", req.name, res.status.value)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        if summary.failed:
            logger.error("%d package(s) failed to install.", summary.failed)
        else:
            logger.info("%d package(s) processed, none failed.", summary.recorded)
        return summary


def run(requests: Iterable[PackageRequest], cap: int = DEFAULT_CAP, probe_up: bool = True, **kwargs) -> RunSummary:
    return Scheduler(cap, **kwargs).run(requests, probe_up=probe_up)


def install_packages(
    package_names: List[str],
    explicit_mirror: bool = False,
    cap: Optional[int] = None,
    probe_fn: Callable[[], bool] = probe,
    **kwargs,
) -> RunSummary:
    """Batch entry point: probe once, then schedule every name."""
    requests = [PackageRequest(n, explicit_mirror) for n in package_names]
    if explicit_mirror:
        probe_up = False
    else:
        probe_up = probe_fn()
        if not probe_up:
            logger.warning("Primary source is down; building from the mirror")
    return Scheduler(cap, **kwargs).run(requests, probe_up=probe_up)
