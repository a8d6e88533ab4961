from __future__ import annotations
import argparse
import logging
import sys
from typing import Optional

from devsetup.cli.menu import Menu, Services, report_sync
from devsetup.config import load_config
from devsetup.errors import CommandError, describe
from devsetup.logger import setup_logging
from devsetup.utils import console


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devsetup", description="Development workstation setup")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("dotfiles", help="Run a dotfiles action without the menu")
    g = p.add_mutually_exclusive_group(required=True)
    g.add_argument("--backup", action="store_true", help="Copy dotfiles into the repository and push")
    g.add_argument("--restore", action="store_true", help="Restore dotfiles from the repository")
    g.add_argument("--setup", action="store_true", help="Clone or initialize the repository")

    p = sub.add_parser("downloads", help="Run the downloads organizer without the menu")
    p.add_argument("--run", action="store_true", required=True, help="Organize the downloads folder now")
    return parser


def run_command(args, services: Services) -> int:
    if args.command == "dotfiles":
        svc = services.dotfiles()
        if args.setup:
            console.success(f"Dotfiles repository ready at {svc.setup_repo()}")
        elif args.backup:
            report_sync(svc.backup())
        else:
            report_sync(svc.restore())
        return 0
    if args.command == "downloads":
        report = services.downloads().organize()
        console.success(f"Moved {report.moved_count} files, removed {len(report.cleaned)} old files")
        return 0
    return Menu(services).loop()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config()
    setup_logging(cfg.log_level, cfg.logs_dir)
    log = logging.getLogger("main")
    log.info("devsetup started (platform=%s, command=%s)", cfg.platform, args.command or "menu")
    try:
        return run_command(args, Services(cfg))
    except (ValueError, CommandError, OSError) as e:
        console.error(describe(e))
        return 1
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
