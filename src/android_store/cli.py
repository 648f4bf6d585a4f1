#!/usr/bin/env python3
"""
Android Store CLI

Command-line front end to the store adapter: refresh, search, list and
manage Android apps through the store service.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from common.exceptions import StoreError
from common.logging_config import LogContext, setup_logging

from .config import StoreConfig
from .models import App, AppQuery
from .plugin import AndroidStorePlugin
from .state_machine import AppState

logger = logging.getLogger(__name__)


def print_apps(apps: Sequence[App], as_json: bool, empty_message: str) -> None:
    """Print apps as a table or a JSON array."""
    if as_json:
        print(json.dumps([app.to_dict() for app in apps], indent=2))
        return

    if not apps:
        print(empty_message)
        return

    for app in apps:
        version = app.version or ""
        if app.update_version:
            version = f"{version} -> {app.update_version}"
        print(f"  {app.id}")
        print(f"    {app.name} [{app.state.value}] {version}".rstrip())
        if app.summary:
            print(f"    {app.summary[:80]}")


def _find(apps: Sequence[App], package: str) -> Optional[App]:
    for app in apps:
        if package in (app.id, app.package_name):
            return app
    return None


async def cmd_refresh(plugin: AndroidStorePlugin, args) -> int:
    """Refresh the store's repository indexes."""
    if await plugin.refresh_metadata():
        print("Repositories refreshed")
        return 0
    print("Store reported a failed refresh", file=sys.stderr)
    return 1


async def cmd_search(plugin: AndroidStorePlugin, args) -> int:
    """Search for apps."""
    apps = await plugin.list_apps(AppQuery(keywords=args.keywords))
    print_apps(apps, args.json, f"No apps found for: {' '.join(args.keywords)}")
    return 0


async def cmd_installed(plugin: AndroidStorePlugin, args) -> int:
    """List installed apps."""
    apps = await plugin.list_apps(AppQuery(is_installed=True))
    print_apps(apps, args.json, "No Android apps installed.")
    return 0


async def cmd_updates(plugin: AndroidStorePlugin, args) -> int:
    """List apps with updates."""
    apps = await plugin.list_apps(AppQuery(is_for_update=True))
    print_apps(apps, args.json, "All Android apps are up to date.")
    return 0


async def cmd_repos(plugin: AndroidStorePlugin, args) -> int:
    """List configured repositories."""
    repos = await plugin.list_apps(AppQuery(is_source=True))
    if args.json:
        print(json.dumps([repo.to_dict() for repo in repos], indent=2))
        return 0

    if not repos:
        print("No repositories configured.")
        return 0
    for repo in repos:
        print(f"  {repo.id}: {repo.homepage}")
    return 0


async def cmd_install(plugin: AndroidStorePlugin, args) -> int:
    """Install an app by package name."""
    # Populate the installed list so the search result state is accurate
    await plugin.list_apps(AppQuery(is_installed=True))
    app = _find(await plugin.list_apps(AppQuery(keywords=[args.package])), args.package)
    if app is None:
        print(f"App not found: {args.package}", file=sys.stderr)
        return 1

    if app.state == AppState.INSTALLED:
        print(f"{app.name} is already installed.")
        return 0

    print(f"Installing {app.name}...")
    await plugin.install_apps([app])
    print(f"Successfully installed {app.name}")
    return 0


async def cmd_uninstall(plugin: AndroidStorePlugin, args) -> int:
    """Uninstall an app by package name."""
    app = _find(await plugin.list_apps(AppQuery(is_installed=True)), args.package)
    if app is None:
        print(f"{args.package} is not installed.")
        return 0

    print(f"Uninstalling {app.name}...")
    await plugin.uninstall_apps([app])
    print(f"Successfully uninstalled {app.name}")
    return 0


async def cmd_update(plugin: AndroidStorePlugin, args) -> int:
    """Upgrade some or all updatable apps."""
    apps = await plugin.list_apps(AppQuery(is_for_update=True))
    if args.packages:
        selected: List[App] = []
        for package in args.packages:
            app = _find(apps, package)
            if app is None:
                print(f"No update available for: {package}", file=sys.stderr)
                return 1
            selected.append(app)
        apps = selected

    if not apps:
        print("All Android apps are up to date.")
        return 0

    print(f"Upgrading {len(apps)} app(s)...")
    await plugin.update_apps(apps)
    print("Upgrade complete")
    return 0


async def cmd_remove_repo(plugin: AndroidStorePlugin, args) -> int:
    """Remove a repository by name."""
    repo = _find(await plugin.list_apps(AppQuery(is_source=True)), args.name)
    if repo is None:
        print(f"Repository not found: {args.name}", file=sys.stderr)
        return 1

    await plugin.remove_repository(repo)
    print(f"Removed repository {repo.id}")
    return 0


async def run(args, config: StoreConfig) -> int:
    """Set up the plugin, run one command and tear down."""
    plugin = AndroidStorePlugin(config)
    try:
        await plugin.setup()
        with LogContext(command=args.command):
            return await args.func(plugin, args)
    except StoreError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        if args.json:
            print(json.dumps(e.to_dict(), indent=2))
        else:
            print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await plugin.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="android-store",
        description="Manage Android apps through the Android store service",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--json", action="store_true", help="Print JSON output")
    parser.add_argument("--config", type=Path, help="Path to config.json")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    refresh_p = subparsers.add_parser("refresh", help="Refresh repository indexes")
    refresh_p.set_defaults(func=cmd_refresh)

    search_p = subparsers.add_parser("search", help="Search for apps")
    search_p.add_argument("keywords", nargs="+", help="Search keywords")
    search_p.set_defaults(func=cmd_search)

    installed_p = subparsers.add_parser("installed", help="List installed apps")
    installed_p.set_defaults(func=cmd_installed)

    updates_p = subparsers.add_parser("updates", help="List available updates")
    updates_p.set_defaults(func=cmd_updates)

    repos_p = subparsers.add_parser("repos", help="List repositories")
    repos_p.set_defaults(func=cmd_repos)

    install_p = subparsers.add_parser("install", help="Install an app")
    install_p.add_argument("package", help="Package name")
    install_p.set_defaults(func=cmd_install)

    uninstall_p = subparsers.add_parser("uninstall", help="Uninstall an app")
    uninstall_p.add_argument("package", help="Package name")
    uninstall_p.set_defaults(func=cmd_uninstall)

    update_p = subparsers.add_parser("update", help="Upgrade apps")
    update_p.add_argument("packages", nargs="*", help="Package names (default: all)")
    update_p.set_defaults(func=cmd_update)

    remove_repo_p = subparsers.add_parser("remove-repo", help="Remove a repository")
    remove_repo_p.add_argument("name", help="Repository name")
    remove_repo_p.set_defaults(func=cmd_remove_repo)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file,
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = StoreConfig.load(args.config)
    except StoreError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
