#!/usr/bin/env python3
"""
Headless live-sync runner.

Polls every configured panel against the backend and prints notifications
(new arrivals, failure episodes) as they happen. Useful for watching the
sync core without the browser dashboard.

Usage:
    python scripts/run_livesync.py                           # Run until Ctrl+C
    python scripts/run_livesync.py --duration 60             # Stop after 60s
    python scripts/run_livesync.py --api-base-url http://host:8081/api
    python scripts/run_livesync.py --dotenv .env --config my.yaml
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from config.env_loader import load_env
from config.settings_loader import reset_settings_cache
from livesync.dashboard import LiveDashboard
from livesync.notifications import Notification


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Run the live-sync core headless and print notifications")
    ap.add_argument("--dotenv", type=str, default=".env", help="Env file to load first")
    ap.add_argument("--config", type=str, default=None, help="Settings YAML (overrides LIVESYNC_CONFIG_PATH)")
    ap.add_argument("--api-base-url", type=str, default=None, help="Backend API root URL")
    ap.add_argument("--duration", type=float, default=None, help="Seconds to run (default: forever)")
    ap.add_argument("--verbose", action="store_true", help="Debug logging")
    return ap


def print_notification(notification: Notification) -> None:
    stamp = notification.created_at.strftime("%H:%M:%S")
    print(f"{stamp} [{notification.level.value.upper()}] {notification.message}")


async def run(duration: Optional[float], dashboard: Optional[LiveDashboard] = None) -> LiveDashboard:
    dashboard = dashboard or LiveDashboard()
    dashboard.notifications.subscribe(print_notification)
    await dashboard.start()
    try:
        if duration is None:
            while True:
                await asyncio.sleep(3600)
        else:
            await asyncio.sleep(duration)
    finally:
        await dashboard.stop()
    return dashboard


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    load_env(args.dotenv)
    if args.config:
        os.environ["LIVESYNC_CONFIG_PATH"] = args.config
    if args.api_base_url:
        os.environ["LIVESYNC_API_BASE_URL"] = args.api_base_url
    reset_settings_cache()

    try:
        asyncio.run(run(args.duration))
    except KeyboardInterrupt:
        print("Stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
