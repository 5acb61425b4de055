#!/usr/bin/env python3
"""
Validate the selectors in booker/providers/portal_dom_schema.py against
captured HTML fixtures.

This script:
1. Walks every CSS selector in the DOM schema
2. Tests each selector against the captured portal pages
3. Reports which selectors match and which fallbacks are dead

Usage:
    python scripts/capture_html_snapshots.py   # once, to capture fixtures
    python scripts/validate_selectors.py
"""

import json
import sys
from dataclasses import fields
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from booker.providers.portal_dom_schema import DOM

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"

# Which captured page each selector group is checked against
GROUP_FIXTURES = {
    "RESOURCE_LIST": "portal_landing",
    "SCHEDULE": "portal_resource",
}

# Fields holding plain strings that are not CSS
NON_CSS_FIELDS = {
    "login_names",
    "org_login_roles",
    "org_login_names",
    "org_login_link_texts",
    "org_login_image_alts",
    "login_boundary_pattern",
    "return_url_param",
    "choose_names",
    "bookable_phrase",
    "range_attributes",
    "disabled_class_fragments",
    "date_attribute",
    "reserve_names",
    "self_marker",
    "next_names",
    "submit_order_names",
    "success_phrases",
    "confirmation_patterns",
}


def load_html(fixture_name: str) -> BeautifulSoup | None:
    """Load an HTML fixture and return BeautifulSoup object."""
    html_path = FIXTURES_DIR / f"{fixture_name}.html"

    if not html_path.exists():
        return None

    return BeautifulSoup(html_path.read_text(encoding="utf-8"), "html.parser")


def schema_selectors(group: object) -> dict[str, list[str]]:
    """Collect the CSS selectors of one selector group, keyed by field name."""
    selectors: dict[str, list[str]] = {}
    for f in fields(group):
        if f.name in NON_CSS_FIELDS:
            continue
        value = getattr(group, f.name)
        if isinstance(value, str):
            selectors[f.name] = [value]
        elif isinstance(value, tuple):
            selectors[f.name] = list(value)
    return selectors


def check_selector(soup: BeautifulSoup, selector: str) -> tuple[int, list[str]]:
    """Test a CSS selector against HTML and return match count and sample text."""
    try:
        elements = soup.select(selector)
    except SelectorSyntaxError as e:
        return -1, [f"ERROR: {e}"]

    samples = []
    for el in elements[:3]:
        text = el.get_text(strip=True)[:50]
        class_str = ".".join(el.get("class", []))
        samples.append(f"<{el.name} class='{class_str}'>{text}...")
    return len(elements), samples


def validate_selectors() -> None:
    """Main validation routine."""
    print("=" * 70)
    print("DOM Selector Validation Report")
    print("=" * 70)

    results: dict[str, list[dict]] = {"working": [], "broken": [], "errors": []}

    for group_field in fields(DOM):
        category = group_field.name
        fixture_name = GROUP_FIXTURES.get(category)
        if fixture_name is None:
            continue

        print(f"\n{'=' * 70}")
        print(f"Category: {category}")
        print("=" * 70)

        soup = load_html(fixture_name)
        if soup is None:
            print(f"  SKIPPED: Fixture '{fixture_name}' not found")
            continue

        for name, selectors in schema_selectors(getattr(DOM, category)).items():
            for selector in selectors:
                count, samples = check_selector(soup, selector)
                entry = {"category": category, "name": name, "selector": selector}

                if count > 0:
                    status = "[OK] FOUND"
                    results["working"].append({**entry, "count": count})
                elif count == 0:
                    status = "[X] NOT FOUND"
                    results["broken"].append(entry)
                else:
                    status = "[!] ERROR"
                    results["errors"].append({**entry, "error": samples[0]})

                print(f"\n  {name}:")
                print(f"    Selector: {selector}")
                print(f"    Status: {status} ({count} matches)")
                if count > 0:
                    for sample in samples:
                        print(f"    Sample: {sample}")

    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)

    print(f"\n[OK] Working selectors: {len(results['working'])}")
    print(f"[X]  Unmatched selectors: {len(results['broken'])}")
    print(f"[!]  Invalid selectors: {len(results['errors'])}")

    if results["broken"]:
        print("\n" + "-" * 70)
        print("UNMATCHED (fallbacks are expected here, a whole unmatched chain is not):")
        print("-" * 70)
        for entry in results["broken"]:
            print(f"  [{entry['category']}] {entry['name']}: {entry['selector']}")

    if results["errors"]:
        print("\n" + "-" * 70)
        print("INVALID SELECTORS:")
        print("-" * 70)
        for entry in results["errors"]:
            print(f"  [{entry['category']}] {entry['name']}: {entry['selector']}")
            print(f"    Error: {entry['error']}")

    report_path = FIXTURES_DIR / "selector_report.json"
    report_path.write_text(json.dumps(results, indent=2), encoding="utf-8")
    print(f"\nReport saved to: {report_path}")


if __name__ == "__main__":
    validate_selectors()
