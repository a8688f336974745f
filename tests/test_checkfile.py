"""Tests for loading and seeding checks from a YAML check file."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from pulsecheck.monitor.checkfile import load_check_file, seed_checks
from pulsecheck.monitor.models import HttpMethod


@pytest.fixture
def sample_yaml(tmp_path: Path) -> Path:
    data = {
        "checks": [
            {
                "name": "API",
                "url": "https://api.example.test/health",
                "method": "HEAD",
                "interval_ms": 30_000,
                "timeout_ms": 5_000,
                "expected_status": 204,
            },
            {"name": "Site", "url": "https://www.example.test/"},
            {"name": "Broken", "url": "gopher://old.example.test/"},
            {"name": "Typo", "url": "https://x.example.test/", "intervall_ms": 5},
        ]
    }
    path = tmp_path / "checks.yaml"
    path.write_text(yaml.dump(data))
    return path


class TestLoadCheckFile:
    def test_loads_valid_entries(self, sample_yaml: Path) -> None:
        checks = load_check_file(sample_yaml)
        assert [c.name for c in checks] == ["API", "Site"]
        api = checks[0]
        assert api.method == HttpMethod.HEAD
        assert api.interval_ms == 30_000
        assert api.timeout_ms == 5_000
        assert api.expected_status == 204

    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_check_file(tmp_path / "nope.yaml") == []

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("checks: [unclosed")
        assert load_check_file(path) == []

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- name: x\n")
        assert load_check_file(path) == []

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_check_file(path) == []


class TestSeedChecks:
    def test_seed_is_idempotent(self, sample_yaml: Path, check_store) -> None:
        created = seed_checks(check_store, load_check_file(sample_yaml))
        assert len(created) == 2

        again = seed_checks(check_store, load_check_file(sample_yaml))
        assert again == []
        assert len(check_store.list_all()) == 2


class TestMalformedChecksKey:
    @pytest.mark.parametrize("value", ["5", "just a string", "{name: x, url: 'https://a.example.test/'}"])
    def test_checks_must_be_a_list(self, tmp_path: Path, value: str) -> None:
        path = tmp_path / "checks.yaml"
        path.write_text(f"checks: {value}\n")
        assert load_check_file(path) == []
