"""Git-backed update status and sync for the preview workspace."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .invokers import run_process

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30.0
SYNC_BRANCH = "main"
# Paths overwritten by a sync; local edits there are reported before syncing.
MANAGED_PREFIXES = ("resume_preview/", "templates/")


class SyncError(Exception):
    """A git step of the sync failed."""


async def _git(root: Path, *args: str) -> Optional[str]:
    """Run git and return stripped stdout, or None on any failure."""
    try:
        result = await run_process(["git", *args], timeout=GIT_TIMEOUT_SECONDS, cwd=root)
    except (OSError, TimeoutError) as exc:
        logger.warning("git_failed args=%s error=%s", " ".join(args), exc)
        return None
    if result.returncode != 0:
        logger.debug("git_nonzero args=%s exit_code=%s", " ".join(args), result.returncode)
        return None
    return result.stdout.strip()


def _changed_managed_paths(porcelain: str) -> List[str]:
    paths = []
    for line in porcelain.splitlines():
        if not line.strip() or line.startswith("??"):
            continue
        path = line[3:]
        if path.startswith(MANAGED_PREFIXES):
            paths.append(path)
    return paths


async def update_details(root: Path, update_available: bool) -> Dict[str, Any]:
    details: Dict[str, Any] = {
        "updateAvailable": update_available,
        "canSync": True,
        "warning": None,
        "branch": SYNC_BRANCH,
    }

    branch = await _git(root, "rev-parse", "--abbrev-ref", "HEAD")
    if branch is None:
        details["canSync"] = False
        details["warning"] = "Unable to check git status."
        return details
    details["branch"] = branch

    if branch != SYNC_BRANCH:
        details["canSync"] = False
        details["warning"] = f'You are on branch "{branch}". Switch to {SYNC_BRANCH} to sync updates.'
        return details

    ahead = await _git(root, "rev-list", f"origin/{SYNC_BRANCH}..HEAD", "--count")
    if ahead and ahead.isdigit() and int(ahead) > 0:
        details["canSync"] = False
        details["warning"] = f"You have {ahead} local commit(s). Push or reset them before syncing."
        return details

    status = await _git(root, "status", "--porcelain")
    if status:
        changed = _changed_managed_paths(status)
        if changed:
            listed = ", ".join(changed[:3])
            more = f" (+{len(changed) - 3} more)" if len(changed) > 3 else ""
            details["warning"] = f"You have uncommitted changes in: {listed}{more}. These will be overwritten."

    return details


async def sync(root: Path) -> None:
    """Fetch and hard-reset to ``origin/main``. Raises SyncError on failure."""
    for step, args in (
        ("fetch", ("fetch", "origin", SYNC_BRANCH, "--quiet")),
        ("reset", ("reset", "--hard", f"origin/{SYNC_BRANCH}")),
    ):
        try:
            result = await run_process(["git", *args], timeout=GIT_TIMEOUT_SECONDS, cwd=root)
        except (OSError, TimeoutError) as exc:
            raise SyncError(f"Git {step} failed: {exc}") from exc
        if result.returncode != 0:
            raise SyncError(f"Git {step} failed: {result.output or result.returncode}")
    logger.info("git_sync_done root=%s", root)
