#!/usr/bin/env python3
# auh/cli.py
"""
auh CLI - command-line front end

Como funciona:
- parses the subcommand and global flags (--config, --verbose)
- each subcommand delegates to its module (scheduler, remove, upgrade, sync, pkgtool)
- uses rich for the user-facing report; progress goes through auh.logging on stderr
- exit code 0 when everything succeeded, 1 on any failure or usage error
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from auh import __version__, config, pkgtool, remove, scheduler, sync, upgrade
from auh import logging as auh_logging
from auh.models import RunSummary

logger = auh_logging.get_logger("cli")
console = Console()

USAGE = "auh <install|installg|remove|update|clean|sync> [packages...]"

# -----------------------
# Small pretty helpers
# -----------------------
def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {escape(msg)}")

def print_warn(msg: str):
    console.print(f"[bold yellow]![/] {escape(msg)}")

def print_err(msg: str):
    console.print(f"[bold red]✖[/] {escape(msg)}")

def print_info(msg: str):
    console.print(f"[cyan]{escape(msg)}[/cyan]")

def _summary_table(summary: RunSummary) -> Table:
    table = Table(title=f"run {summary.run_id}")
    table.add_column("package")
    table.add_column("pipeline")
    table.add_column("status")
    for r in summary.results:
        style = "green" if r.ok else "red"
        table.add_row(r.name, r.pipeline.value if r.pipeline else "-", f"[{style}]{r.status.value}[/{style}]")
    return table

# -----------------------
# Subcommands
# -----------------------
def cmd_install(args) -> int:
    if args.jobs is not None and args.jobs < 1:
        print_err("--jobs must be at least 1")
        return 1
    summary = scheduler.install_packages(args.packages, explicit_mirror=args.github, cap=args.jobs)
    if args.json:
        console.print_json(data=summary.to_dict())
        return 0 if summary.ok else 1
    if args.verbose:
        console.print(_summary_table(summary))
    for r in summary.results:
        if r.ok:
            print_ok(f"{r.name}: {r.status.value}")
        else:
            print_err(f"{r.name}: {r.status.value}" + (f" ({r.detail})" if r.detail else ""))
    if summary.failed:
        print_err(f"{summary.failed} package(s) failed to install.")
        return 1
    print_ok(f"Installation complete: {summary.recorded} package(s)")
    return 0

def cmd_remove(args) -> int:
    res = remove.remove_packages(args.packages, autoremove=args.autoremove)
    for n in res["removed"]:
        print_ok(f"{n} removed")
    for n in res["skipped"]:
        print_warn(f"{n} is not installed; skipped")
    if res["failed"]:
        print_err(f"Removal failed: {', '.join(res['failed'])}")
        return 1
    return 0

def cmd_update(args) -> int:
    res = upgrade.update_packages(args.packages)
    if not args.packages:
        if res["ok"]:
            print_ok("System upgrade completed")
            return 0
        print_err(f"System update failed (code {res['rc']})")
        return 1
    for r in res["results"]:
        if r["ok"]:
            print_ok(f"{r['name']} updated ({r['via']})")
    if res["failed"]:
        print_err(f"Some packages failed to update: {', '.join(res['failed'])}")
        return 1
    return 0

def cmd_clean(args) -> int:
    print_info("Cleaning package cache...")
    rc = pkgtool.clean_cache()
    if rc != 0:
        print_err(f"Cache clean failed (code {rc})")
        return 1
    print_ok("Package cache cleaned")
    return 0

def cmd_sync(args) -> int:
    res = sync.sync_explicit()
    if not res["ok"]:
        print_err("Catalog lookup failed; cannot report packages from the primary source")
        return 1
    for n in res["found"]:
        print_info(f"Found AUR package: {n}")
    print_ok(f"Total AUR packages found in explicitly installed: {res['total']}")
    return 0

# -----------------------
# Argparse wiring
# -----------------------
def _add_install_args(p: argparse.ArgumentParser):
    p.add_argument("packages", nargs="+", metavar="package")
    p.add_argument("-j", "--jobs", type=int, default=None, help="max parallel builds (default: install.jobs)")
    p.add_argument("--json", action="store_true", help="print the run summary as JSON")

def make_parser():
    ap = argparse.ArgumentParser(prog="auh", description="AUR helper with parallel builds", usage=USAGE)
    ap.add_argument("--config", help="explicit config file (YAML or JSON)")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug output")
    ap.add_argument("--version", action="version", version=f"auh {__version__}")
    sub = ap.add_subparsers(dest="cmd")

    # install / installg
    p_install = sub.add_parser("install", help="build and install packages")
    _add_install_args(p_install)
    p_install.add_argument("--github", action="store_true", help="build from the mirror without probing the primary source")
    p_installg = sub.add_parser("installg", help="same as install --github")
    _add_install_args(p_installg)
    p_installg.set_defaults(github=True)

    # remove
    p_remove = sub.add_parser("remove", help="remove installed packages")
    p_remove.add_argument("packages", nargs="+", metavar="package")
    p_remove.add_argument("--autoremove", action="store_true", help="also remove unneeded dependencies (-Rsn)")

    # update
    p_update = sub.add_parser("update", help="update named packages, or the whole system")
    p_update.add_argument("packages", nargs="*", metavar="package")

    sub.add_parser("clean", help="clean the package cache")
    sub.add_parser("sync", help="list explicit packages known to the primary source")
    return ap

COMMANDS = {
    "install": cmd_install,
    "installg": cmd_install,
    "remove": cmd_remove,
    "update": cmd_update,
    "clean": cmd_clean,
    "sync": cmd_sync,
}

def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors, 0 on --help/--version
        return 0 if not e.code else 1
    if not args.cmd:
        parser.print_usage()
        return 1

    try:
        if args.config:
            config.reload(args.config, fatal=True)
        if args.verbose:
            auh_logging.set_level(logging.DEBUG)
        return COMMANDS[args.cmd](args)
    except ValueError as e:
        print_err(str(e))
        return 1
    except KeyboardInterrupt:
        print_err("Interrupted")
        return 1
    except Exception as e:
        logger.debug("command %s raised", args.cmd, exc_info=True)
        print_err(f"Command failed: {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
