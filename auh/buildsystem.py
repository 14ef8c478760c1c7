# auh/buildsystem.py
# -*- coding: utf-8 -*-
"""
buildsystem.py - per-package build job (acquire -> build -> install)

API principal:
  result = run_job(request, pipeline, workdir)

  install_from_primary(name, workdir)   catalog query, full clone, makepkg -si
  install_from_mirror(name, workdir)    shallow clone of branch <name>, makepkg -si --skippgpcheck

Resultado:
  JobResult(name, status, pipeline, detail)

Comportamento:
  - Already-installed packages short-circuit before any network access.
  - Every step runs as an argument vector, never through a shell.
  - The scratch directory is owned by the job and removed when it ends
    (install.keep_build_dirs keeps it).
  - Failures stay inside the job: the returned JobResult is the only
    visible effect.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import List, Optional

from auh import fetcher, names, pkgtool
from auh.config import get_config, get_commands_config
from auh.logging import get_logger
from auh.models import JobResult, JobStatus, PackageRequest, PipelineChoice

logger = get_logger("buildsystem")

# --- helpers ---
def _prepare_workdir(workdir: Path) -> None:
    workdir.parent.mkdir(parents=True, exist_ok=True)
    if workdir.exists():
        # leftover from an interrupted run with the same id
        shutil.rmtree(str(workdir), ignore_errors=True)

def cleanup(workdir: Path, keep: Optional[bool] = None) -> None:
    if keep is None:
        keep = bool(get_config().get("install.keep_build_dirs", False))
    if keep:
        logger.info("Keeping build dir %s per config", workdir)
        return
    shutil.rmtree(str(workdir), ignore_errors=True)

def makepkg_command(skip_pgp: bool = False) -> List[str]:
    cmd = [get_commands_config().get("makepkg") or "makepkg", "-si", "--noconfirm"]
    if skip_pgp:
        cmd.append("--skippgpcheck")
    return cmd

def _build(name: str, workdir: Path, pipeline: PipelineChoice, skip_pgp: bool = False) -> JobResult:
    logger.info("Building %s...", name)
    # makepkg keeps the terminal: sudo may prompt for credentials
    rc, _, _ = pkgtool.run_command(makepkg_command(skip_pgp), cwd=workdir, capture=False)
    if rc != 0:
        logger.error("makepkg failed for %s (code %s)", name, rc)
        return JobResult(name, JobStatus.BUILD_FAILURE, pipeline, f"makepkg exited with {rc}")
    logger.info("Built and installed %s from %s", name, pipeline.value)
    return JobResult(name, JobStatus.SUCCESS, pipeline)

# --- pipelines ---
def install_from_primary(name: str, workdir: Path, *, check_installed: bool = True) -> JobResult:
    pipeline = PipelineChoice.PRIMARY
    if check_installed and pkgtool.is_installed(name):
        logger.info("%s is already installed; skipping.", name)
        return JobResult(name, JobStatus.ALREADY_INSTALLED, pipeline)

    exists = fetcher.query_catalog(name)
    if exists is False:
        logger.error("Package not found: %s", name)
        return JobResult(name, JobStatus.NOT_FOUND_UPSTREAM, pipeline)
    if exists is None:
        logger.warning("Could not confirm %s in the catalog; trying the clone anyway", name)

    logger.info("Cloning %s...", name)
    _prepare_workdir(workdir)
    if not fetcher.clone_primary(name, workdir):
        logger.error("git clone failed for %s", name)
        return JobResult(name, JobStatus.CLONE_FAILURE, pipeline, fetcher.primary_clone_url(name))
    return _build(name, workdir, pipeline)

def install_from_mirror(name: str, workdir: Path, mirror_base: Optional[str] = None, *, check_installed: bool = True) -> JobResult:
    pipeline = PipelineChoice.MIRROR
    if check_installed and pkgtool.is_installed(name):
        logger.info("%s is already installed; skipping.", name)
        return JobResult(name, JobStatus.ALREADY_INSTALLED, pipeline)

    logger.info("Cloning %s from mirror branch...", name)
    _prepare_workdir(workdir)
    if not fetcher.clone_mirror(name, workdir, mirror_base):
        logger.error("Failed to clone mirror for %s", name)
        return JobResult(name, JobStatus.CLONE_FAILURE, pipeline, f"branch {name}")
    skip_pgp = bool(get_config().get("install.skip_pgp_on_mirror", True))
    return _build(name, workdir, pipeline, skip_pgp=skip_pgp)

# --- worker entry point ---
def run_job(request: PackageRequest, pipeline: PipelineChoice, workdir: str) -> JobResult:
    """
    Run one build job. Module-level so a process pool can pickle it.
    Never raises: unexpected errors are reported as BUILD_FAILURE.
    """
    name = request.name
    if not names.validate(name):
        return JobResult(name, JobStatus.INVALID_NAME, pipeline)
    path = Path(workdir)
    try:
        if pipeline is PipelineChoice.MIRROR:
            return install_from_mirror(name, path)
        return install_from_primary(name, path)
    except Exception as e:
        logger.exception("build job for %s raised", name)
        return JobResult(name, JobStatus.BUILD_FAILURE, pipeline, str(e))
    finally:
        if path.exists():
            cleanup(path)
