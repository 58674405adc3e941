"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import json
import logging

import pytest

from shop_import import __main__
from shop_import.cli import main

CUSTOMERS = (
    "firstName,lastName,phone,email\n"
    "Jane,Doe,(555) 123-4567,jane@example.com\n"
    "John,Roe,555-123-4567,\n"
    "Bob,Poe,555,\n"
)


def _write_input(tmp_path):
    input_path = tmp_path / "customers.csv"
    input_path.write_text(CUSTOMERS, encoding="utf-8")
    return input_path


def test_cli_smoke_writes_cleaned_rows(tmp_path) -> None:
    input_path = _write_input(tmp_path)
    output_path = tmp_path / "out" / "cleaned.csv"

    exit_code = main([str(input_path), str(output_path)])

    assert exit_code == 0
    assert output_path.exists()
    contents = output_path.read_text(encoding="utf-8")
    assert "jane@example.com" in contents
    assert "5551234567" in contents
    assert "Invalid: 3 digits (need 10)" in contents


def test_cli_commit_reports_result(tmp_path, caplog: pytest.LogCaptureFixture) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "repository": {"class": "shop_import.repositories.memory.InMemoryCustomerRepository"},
                "import": {"max_error_details": 5},
            }
        ),
        encoding="utf-8",
    )
    caplog.set_level(logging.INFO)

    exit_code = main(
        [
            str(_write_input(tmp_path)),
            str(tmp_path / "cleaned.xlsx"),
            "--config",
            str(config_path),
            "--tenant",
            "shop-1",
            "--commit",
        ]
    )

    assert exit_code == 0
    assert (tmp_path / "cleaned.xlsx").exists()
    assert "Successfully imported 1 customers" in caplog.text
    assert "internal duplicate phone 5551234567" in caplog.text


def test_cli_returns_error_for_unreadable_input(tmp_path) -> None:
    exit_code = main([str(tmp_path / "missing.csv"), str(tmp_path / "cleaned.csv")])

    assert exit_code == 1
    assert not (tmp_path / "cleaned.csv").exists()


def test_module_entry_point_delegates_to_cli(tmp_path) -> None:
    """The package entry point should behave like the CLI."""

    output_path = tmp_path / "cleaned.csv"

    exit_code = __main__.main([str(_write_input(tmp_path)), str(output_path)])

    assert exit_code == 0
    assert output_path.exists()


def test_module_entry_point_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main([])

    captured = capsys.readouterr()
    assert "python -m shop_import" in captured.out
    assert exit_code == 2
