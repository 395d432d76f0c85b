#!/usr/bin/env python3
"""Show the supervisor's task health from its /health endpoint.

Usage examples:
    # Local supervisor on the configured port
    uv run python scripts/health.py

    # Remote host, only failing tasks
    uv run python scripts/health.py --url http://10.0.0.5:4100 --failing

    # Raw JSON
    uv run python scripts/health.py --json
"""

import argparse
import json
import sys
from pathlib import Path

import httpx

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import settings

DEFAULT_URL = f"http://localhost:{settings.port}"


def fetch_health(base_url: str, timeout: float = 10) -> dict:
    """GET /health. A 503 still carries a report, so only transport errors exit."""
    try:
        resp = httpx.get(f"{base_url.rstrip('/')}/health", timeout=timeout)
    except httpx.HTTPError as exc:
        print(f"ERROR: could not reach {base_url}: {exc}", file=sys.stderr)
        sys.exit(2)
    if resp.status_code not in (200, 503):
        print(f"ERROR: API returned {resp.status_code}: {resp.text}", file=sys.stderr)
        sys.exit(2)
    return resp.json()


def format_task(name: str, task: dict, color: bool = True) -> str:
    """Format one task row for display."""
    if task.get("running"):
        state, code = "RUNNING", "\033[36m"  # cyan
    elif task.get("lastError"):
        state, code = "FAILING", "\033[31m"  # red
    elif task.get("lastRun"):
        state, code = "OK", "\033[32m"  # green
    else:
        state, code = "PENDING", "\033[90m"  # gray
    reset = "\033[0m"
    if not color:
        code = reset = ""

    last_run = task.get("lastRun") or "-"
    line = f"{name:24s} {code}{state:8s}{reset} last={last_run} runs={task.get('runCount', 0)}"
    if task.get("lastError"):
        line += f"\n{'':24s} error: {task['lastError']}"
    return line


def main() -> None:
    parser = argparse.ArgumentParser(description="Show supervisor task health")
    parser.add_argument("--url", default=DEFAULT_URL, help=f"Base URL (default: {DEFAULT_URL})")
    parser.add_argument("--failing", action="store_true", help="Only show failing tasks")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON report")
    parser.add_argument("--no-color", action="store_true", help="Disable color output")
    args = parser.parse_args()

    report = fetch_health(args.url)
    if args.json:
        print(json.dumps(report, indent=2))
        return

    tasks: dict[str, dict] = report.get("tasks", {})
    print(
        f"status={report.get('status')} online={report.get('online')} "
        f"uptime={report.get('uptime')}s inFlight={report.get('inFlight')}"
    )
    print(f"cache={report.get('cache', {}).get('status', '?')}\n")

    shown = 0
    for name, task in tasks.items():
        if args.failing and not task.get("lastError"):
            continue
        print(format_task(name, task, color=not args.no_color))
        shown += 1

    if not shown:
        print("No failing tasks." if args.failing else "No tasks registered.")

    if report.get("status") != "healthy":
        sys.exit(1)


if __name__ == "__main__":
    main()
