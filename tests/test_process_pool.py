"""Scheduler runs on the default ProcessPoolExecutor with stub tools on disk."""
import os
import stat
import sys

import pytest

from auh import config, scheduler
from auh.models import JobStatus, PackageRequest
from auh.scheduler import Scheduler

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell stubs")

# pacman -Q always says "not installed"
PACMAN = "#!/bin/sh\nexit 1\n"
# git clone ... <dest>: create dest
GIT = '#!/bin/sh\nfor a; do last="$a"; done\nmkdir -p "$last"\n'
# makepkg fails for packages whose scratch dir ends in -broken
MAKEPKG = '#!/bin/sh\nsleep 0.2\ncase "$PWD" in *-broken) exit 2 ;; esac\nexit 0\n'


def _stub(path, body):
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def stub_tools(tmp_path, isolated_config):
    bindir = tmp_path / "bin"
    bindir.mkdir()
    isolated_config.merged["commands"].update(
        pacman=_stub(bindir / "pacman", PACMAN),
        git=_stub(bindir / "git", GIT),
        makepkg=_stub(bindir / "makepkg", MAKEPKG),
    )
    config.set_config(isolated_config)
    return isolated_config


def test_install_on_process_pool(stub_tools, tmp_path):
    names = ["a", "b", "c", "d", "broken", "f", "bad;name"]
    summary = scheduler.install_packages(names, cap=4, probe_fn=lambda: False)
    assert summary.recorded == 7
    assert summary.counts[JobStatus.SUCCESS] == 5
    assert summary.counts[JobStatus.BUILD_FAILURE] == 1
    assert summary.counts[JobStatus.INVALID_NAME] == 1
    assert sorted(summary.failed_names()) == ["bad;name", "broken"]
    assert 1 <= summary.peak_live <= 4
    # scratch dirs are removed by the workers
    assert os.listdir(tmp_path / "build") == []


def _die(request, pipeline, workdir):
    os._exit(3)


def test_dead_worker_is_dispatch_failure(stub_tools):
    summary = Scheduler(1, job=_die).run([PackageRequest("a"), PackageRequest("b")], probe_up=False)
    assert summary.recorded == 2
    assert summary.counts[JobStatus.DISPATCH_FAILURE] == 2
    assert not summary.ok
