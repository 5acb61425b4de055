#!/usr/bin/env python3
"""
Capture HTML snapshots from the live UBC Recreation portal for testing.

This script:
1. Signs in through the portal and the campus-wide login
2. Captures the landing page that lists every court
3. Opens the first court and captures its schedule view
4. Saves them as test fixtures (read by tests/test_dom_parsing.py)

Usage:
    python scripts/capture_html_snapshots.py
"""

import json
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from selenium.common.exceptions import TimeoutException

from booker.config import settings
from booker.providers.auth_flow import AuthenticationFlow
from booker.providers.dom_actions import js_click
from booker.providers.errors import PortalError
from booker.providers.scanner import AvailabilityScanner
from booker.providers.session import browser_session

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"


def save_snapshot(driver, name: str, metadata: dict | None = None) -> Path:
    """Save HTML snapshot and metadata."""
    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)

    html_path = FIXTURES_DIR / f"{name}.html"
    html_path.write_text(driver.page_source, encoding="utf-8")
    print(f"  Saved: {html_path}")

    if metadata is not None:
        meta_path = FIXTURES_DIR / f"{name}.meta.json"
        metadata["url"] = driver.current_url
        metadata["title"] = driver.title
        metadata["captured_at"] = time.strftime("%Y-%m-%d %H:%M:%S")
        meta_path.write_text(json.dumps(metadata, indent=2), encoding="utf-8")
        print(f"  Saved: {meta_path}")

    return html_path


def capture_snapshots() -> None:
    """Main capture routine."""
    print("=" * 60)
    print("UBC Recreation Portal HTML Snapshot Capture")
    print("=" * 60)

    config = settings.portal_config()
    if not config.has_credentials:
        print("ERROR: Portal credentials not configured.")
        print("Set PORTAL_USERNAME and PORTAL_PASSWORD in .env")
        sys.exit(1)

    with browser_session(config) as session:
        driver = session.driver

        print("\n[1/3] Signing in...")
        driver.get(config.landing_url)
        auth = AuthenticationFlow(config)
        try:
            state = auth.ensure_authenticated(driver, config.landing_url)
        except PortalError as e:
            print(f"ERROR: Login failed: {e}")
            save_snapshot(driver, "portal_login_failed", {"state": "login_failed"})
            sys.exit(1)
        print(f"  Login path: {' -> '.join(s.value for s in auth.history)} ({state.value})")

        print("\n[2/3] Capturing landing page...")
        scanner = AvailabilityScanner(config, waits=auth.waits)
        resources = scanner.discover_resources(driver)
        save_snapshot(driver, "portal_landing", {"state": "landing", "resources": len(resources)})

        if not resources:
            print("  No choose controls found, skipping the schedule view")
            return

        print("\n[3/3] Capturing first court's schedule...")
        url_before = driver.current_url
        js_click(driver, resources[0])
        auth.waits.wait_for_url_change(driver, url_before, config.step_timeout_seconds)
        try:
            auth.waits.wait_for_page_settled(driver, config.step_timeout_seconds)
        except TimeoutException as e:
            print(f"  Warning: Schedule page did not settle: {e}")
        save_snapshot(driver, "portal_resource", {"state": "resource_schedule"})

    print("\n" + "=" * 60)
    print("Snapshot capture complete!")
    print(f"Fixtures saved to: {FIXTURES_DIR}")
    print("=" * 60)

    print("\nSaved files:")
    for f in sorted(FIXTURES_DIR.glob("portal_*")):
        print(f"  - {f.name}")


if __name__ == "__main__":
    capture_snapshots()
