"""Tests for CLI date filter helper."""

from datetime import date

import click
import pytest

from ledgerkit.cli.date_filters import parse_date_or_exit, resolve_cli_date_range
from ledgerkit.utils.date_parser import get_date_range


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_resolve_cli_date_range_rejects_period_with_start_end(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date="2024-01-01",
            end_date=None,
            period="this-month",
        )

    assert excinfo.value.exit_code == 1
    err = capsys.readouterr().err
    assert "cannot be combined" in err


def test_resolve_cli_date_range_returns_period_range():
    expected_start, expected_end = get_date_range("this-month")
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date=None,
        end_date=None,
        period="this-month",
    )

    assert start == expected_start
    assert end == expected_end


def test_resolve_cli_date_range_parses_explicit_dates():
    start, end = resolve_cli_date_range(
        _ctx(), start_date="2024-01-01", end_date="2024-01-31"
    )
    assert start == date(2024, 1, 1)
    assert end == date(2024, 1, 31)


def test_resolve_cli_date_range_open_ended():
    assert resolve_cli_date_range(_ctx(), start_date=None, end_date=None) == (None, None)


def test_resolve_cli_date_range_rejects_inverted_range(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(_ctx(), start_date="2024-02-01", end_date="2024-01-01")

    assert excinfo.value.exit_code == 1
    assert "must not be after" in capsys.readouterr().err


def test_parse_date_or_exit_reports_label(capsys):
    with pytest.raises(click.exceptions.Exit):
        parse_date_or_exit(_ctx(), "gibberish", "as-of date")

    assert "Invalid as-of date" in capsys.readouterr().err


def test_parse_date_or_exit_passes_none():
    assert parse_date_or_exit(_ctx(), None, "date") is None
