"""Launcher: pre-flight checks, then run the preview server in a restart loop.

Child exit codes: 3 restarts the server, 2 stops without cleanup, 0 stops and
removes generated files, anything else is passed through without cleanup.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import socket
import subprocess
import sys
import time
import webbrowser
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Optional

from rich.console import Console

from .config import ConfigStore
from .cleanup import CleanupReport, cleanup_generated
from .errors import ExitCode
from .observability import setup_logging
from .settings import PreviewSettings, has_errors, validate_settings

logger = logging.getLogger(__name__)
console = Console()

SERVER_COMMAND = (sys.executable, "-m", "resume_preview.web.app")
GIT_TIMEOUT_SECONDS = 30


def print_banner() -> None:
    console.print()
    console.print("=" * 40, style="cyan")
    console.print(" Resume Preview - Resume Editor", style="bold cyan")
    console.print("=" * 40, style="cyan")
    console.print()


def status(prefix: str, message: str, style: str = "cyan") -> None:
    console.print(f"[{style}]\\[{prefix}][/{style}] {message}")


def port_in_use(host: str, port: int) -> bool:
    """True when something already listens on ``host:port``."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(0.5)
        return sock.connect_ex((host, port)) == 0


def _git(root: Path, *args: str) -> Optional[str]:
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.strip()


def check_for_updates(root: Path) -> bool:
    """Fetch ``origin/main`` and report whether HEAD is behind it."""
    if _git(root, "rev-parse", "--git-dir") is None:
        return False
    status("UPDATE", "Checking for template updates...")
    _git(root, "fetch", "origin", "main", "--quiet")
    behind = _git(root, "rev-list", "HEAD..origin/main", "--count") or "0"
    if behind.isdigit() and int(behind) > 0:
        status("UPDATE", "Update available! You can sync from the browser UI.", style="yellow")
        return True
    status("UPDATE", "You are using the latest version.")
    return False


def install_dependencies(settings: PreviewSettings) -> bool:
    """Install Chromium for Playwright into the workspace, once."""
    browsers_dir = settings.browsers_dir
    if browsers_dir.is_dir() and any(browsers_dir.iterdir()):
        status("1/3", "Dependencies already installed, reusing...")
        return True

    status("1/3", "Installing dependencies...")
    env = {**os.environ, "PLAYWRIGHT_BROWSERS_PATH": str(browsers_dir)}
    try:
        completed = subprocess.run(
            [sys.executable, "-m", "playwright", "install", "chromium"],
            env=env,
        )
    except OSError as exc:
        console.print(f"[red]\\[ERROR][/red] Failed to install dependencies: {exc}")
        return False
    if completed.returncode != 0:
        console.print("[red]\\[ERROR][/red] Failed to install dependencies")
        return False
    return True


def open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error:
        opened = False
    if not opened:
        status("INFO", f"Open {url} in your browser")


def spawn_server(settings: PreviewSettings) -> int:
    """Run one server process to completion and return its exit code."""
    env = {
        **os.environ,
        **settings.to_env(),
        "PLAYWRIGHT_BROWSERS_PATH": str(settings.browsers_dir),
    }
    try:
        completed = subprocess.run(list(SERVER_COMMAND), env=env, cwd=settings.root_dir)
    except OSError as exc:
        console.print(f"[red]\\[ERROR][/red] Failed to start server: {exc}")
        return ExitCode.ERROR
    return completed.returncode


def default_cleanup(settings: PreviewSettings) -> CleanupReport:
    layout = settings.layout
    store = ConfigStore(layout.config_file)
    config = store.load()
    return cleanup_generated(
        layout,
        external_paths=config.external_paths,
        dependency_dirs=[settings.browsers_dir],
    )


class Launcher:
    """Supervises the server process across restarts."""

    def __init__(
        self,
        settings: PreviewSettings,
        spawn_server: Callable[[PreviewSettings], int] = spawn_server,
        cleanup: Callable[[PreviewSettings], CleanupReport] = default_cleanup,
    ) -> None:
        self.settings = settings
        self._spawn_server = spawn_server
        self._cleanup = cleanup
        self._cleaned = False
        self.spawn_count = 0

    def run(self) -> int:
        while True:
            self.spawn_count += 1
            code = self._spawn_server(self.settings)
            logger.info("server_exited exit_code=%s spawn=%s", code, self.spawn_count)

            if code == ExitCode.RESTART:
                console.print()
                status("SYNC", "Restarting server with updated code...")
                console.print()
                # The sync just pulled the update.
                self.settings = replace(self.settings, update_available=False)
                continue

            if code == ExitCode.FAST_STOP:
                console.print()
                status("INFO", "Fast shutdown - skipping cleanup for faster restart.")
                console.print("Done! Server stopped (files preserved).")
                return ExitCode.FAST_STOP

            if code == ExitCode.SUCCESS:
                self.cleanup_once()
                return ExitCode.SUCCESS

            console.print(f"[red]\\[ERROR][/red] Server exited with code {code}")
            return code

    def cleanup_once(self) -> Optional[CleanupReport]:
        if self._cleaned:
            return None
        self._cleaned = True
        console.print()
        status("3/3", "Cleaning up...")
        report = self._cleanup(self.settings)
        for path in report.removed:
            console.print(f"  - Removed {_display_path(path, self.settings.root_dir)}")
        if report.failed:
            console.print(f"  [yellow]{len(report.failed)} file(s) could not be removed[/yellow]")
        console.print()
        console.print("Done! Repo is clean.", style="green")
        return report

    def install_signal_handlers(self) -> None:
        def handle(signum, _frame):
            logger.info("launcher_signal signal=%s", signum)
            self.cleanup_once()
            sys.exit(ExitCode.SUCCESS)

        signal.signal(signal.SIGINT, handle)
        signal.signal(signal.SIGTERM, handle)


def _display_path(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def build_settings(args: argparse.Namespace, environ: Optional[Dict[str, str]] = None) -> PreviewSettings:
    settings = PreviewSettings.from_env(environ)
    changes = {"verbose": args.verbose or settings.verbose}
    if args.root is not None:
        changes["root_dir"] = args.root.expanduser().resolve()
    if args.port is not None:
        changes["port"] = args.port
    if args.resume:
        changes["requested_document"] = args.resume
    if args.no_idle_shutdown:
        changes["idle_shutdown"] = False
    return replace(settings, **changes)


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Resume Preview - live HTML resume editor")
    parser.add_argument("--root", type=Path, help="Workspace root (default: $CVAC_ROOT or cwd)")
    parser.add_argument("--port", "-p", type=int, help="Port to serve on (default: 3000)")
    parser.add_argument("--resume", "-r", help="Document to open first, e.g. 'templates/example'")
    parser.add_argument("--no-browser", action="store_true", help="Do not open a browser window")
    parser.add_argument("--no-idle-shutdown", action="store_true", help="Keep running with no browser tab open")
    parser.add_argument("--skip-update-check", action="store_true", help="Do not contact the git remote")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    settings = build_settings(args)
    setup_logging(settings.verbose)
    print_banner()

    issues = validate_settings(settings)
    for issue in issues:
        console.print(f"[yellow]{issue.severity.value}[/yellow] {issue.field}: {issue.message}")
    if has_errors(issues):
        return ExitCode.ERROR

    if not args.skip_update_check:
        settings = replace(settings, update_available=check_for_updates(settings.root_dir))

    if port_in_use(settings.host, settings.port):
        status("INFO", f"Server already running on port {settings.port}")
        status("INFO", "Opening browser to existing server...")
        if not args.no_browser:
            open_browser(settings.base_url)
        console.print("\nTo stop the server, use the Stop button in the browser.\n")
        return ExitCode.SUCCESS

    if not install_dependencies(settings):
        return ExitCode.ERROR

    status("2/3", "Starting server...")
    console.print(f"\n  Open in browser: {settings.base_url}/\n")
    console.print("  To stop: Close browser tab OR press Ctrl+C here\n")

    launcher = Launcher(settings)
    launcher.install_signal_handlers()
    if not args.no_browser:
        open_browser(settings.base_url)

    code = launcher.run()
    # Keep the final status on screen briefly.
    time.sleep(1)
    return int(code)


if __name__ == "__main__":
    sys.exit(main())
