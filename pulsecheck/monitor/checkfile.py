"""Check file — seeds check definitions from a YAML document at startup.

Format::

    checks:
      - name: API
        url: https://api.example.com/health
        method: GET
        interval_ms: 60000
        timeout_ms: 5000
        expected_status: 200
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .errors import CheckValidationError
from .models import Check, new_check
from .store import SQLiteCheckStore

logger = logging.getLogger(__name__)


def load_check_file(path: Path | str) -> list[Check]:
    """Parse and validate every entry. Malformed entries are logged and skipped."""
    path = Path(path)
    if not path.exists():
        logger.warning("Check file not found: %s", path)
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        logger.error("Failed to parse %s: %s", path, e)
        return []

    if not isinstance(raw, dict):
        logger.error("Check file %s must contain a mapping with a 'checks' list", path)
        return []

    entries = raw.get("checks") or []
    if not isinstance(entries, list):
        logger.error("Check file %s: 'checks' must be a list, got %s", path, type(entries).__name__)
        return []

    checks = []
    for i, entry in enumerate(entries):
        try:
            checks.append(new_check(entry))
        except CheckValidationError as e:
            logger.warning("Skipping malformed check #%d in %s: %s", i, path, e)

    logger.info("Loaded %d checks from %s", len(checks), path)
    return checks


def seed_checks(store: SQLiteCheckStore, checks: list[Check]) -> list[Check]:
    """Create the checks whose (name, url) pair is not stored yet."""
    existing = {(c.name, c.url) for c in store.list_all()}
    created = []
    for check in checks:
        key = (check.name, check.url)
        if key in existing:
            continue
        store.create(check)
        existing.add(key)
        created.append(check)
    if created:
        logger.info("Seeded %d new checks", len(created))
    return created
