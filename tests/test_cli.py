"""
Tests for CLI functionality.

These tests verify the command-line interface logic.
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime
from io import StringIO
from typing import Any
from unittest.mock import patch

import pytest

from birdride.aggregation.dedup import merge
from birdride.cli import cmd_info, cmd_sightings, create_parser, format_result, main, parse_coords
from birdride.errors import InvalidArgumentError, RouteNotFoundError
from birdride.geometry import PathGeometry
from birdride.schemas import (
    AggregationIncomplete,
    AggregationResult,
    RawObservation,
    SortOrder,
)

PATH = PathGeometry.from_pairs([(45.5, -122.6), (45.6, -122.6)])


def _sightings_args(**overrides: Any) -> argparse.Namespace:
    defaults: dict[str, Any] = {
        "route": "12345",
        "coords": None,
        "days": None,
        "radius_km": None,
        "max_points": None,
        "within_miles": None,
        "sort": "recent",
        "notable_only": False,
        "json": False,
    }
    return argparse.Namespace(**{**defaults, **overrides})


def _result(with_species: bool = True, **kwargs: Any) -> AggregationResult:
    aggregates: tuple[Any, ...] = ()
    if with_species:
        obs = RawObservation(
            species_code="snobun",
            common_name="Snow Bunting",
            scientific_name="Plectrophenax nivalis",
            lat=45.5,
            lng=-122.6,
            observed_at=datetime(2024, 5, 1, 8, 30),
            location_name="Sauvie Island",
            report_token="S1",
        )
        aggregates = tuple(merge([obs], notable_codes={"snobun"}).values())
    return AggregationResult(
        aggregates=aggregates, sample_points=2, total_queries=4, path=PATH, **kwargs
    )


class TestCreateParser:
    """Tests for create_parser function."""

    def test_creates_parser(self) -> None:
        """Parser is created successfully."""
        parser = create_parser()
        assert isinstance(parser, argparse.ArgumentParser)
        assert parser.prog == "birdride"

    def test_parser_has_version(self) -> None:
        """Parser has version argument."""
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["--version"])

    def test_parser_has_debug_flag(self) -> None:
        """Parser accepts --debug flag."""
        parser = create_parser()
        args = parser.parse_args(["--debug", "info"])
        assert args.debug is True

    def test_parser_sightings_defaults(self) -> None:
        """Sightings leaves numeric options unset so settings apply."""
        parser = create_parser()
        args = parser.parse_args(["sightings", "12345"])
        assert args.command == "sightings"
        assert args.route == "12345"
        assert args.days is None
        assert args.radius_km is None
        assert args.sort == "recent"
        assert args.notable_only is False

    def test_parser_sightings_options(self) -> None:
        """Sightings accepts coords and filters."""
        parser = create_parser()
        args = parser.parse_args(
            [
                "sightings",
                "--coords",
                "45.5,-122.6;45.6,-122.7",
                "--days",
                "7",
                "--radius-km",
                "5",
                "--within-miles",
                "1.5",
                "--sort",
                "rarity",
                "--notable-only",
                "--json",
            ]
        )
        assert args.route is None
        assert args.days == 7
        assert args.radius_km == 5.0
        assert args.within_miles == 1.5
        assert args.sort == "rarity"
        assert args.notable_only is True
        assert args.json is True

    def test_parser_rejects_unknown_sort(self) -> None:
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["sightings", "1", "--sort", "alphabetical"])


class TestParseCoords:
    """Tests for parse_coords function."""

    def test_pairs(self) -> None:
        assert parse_coords("45.5,-122.6; 45.6,-122.7;") == [(45.5, -122.6), (45.6, -122.7)]

    @pytest.mark.parametrize("value", ["", ";", "45.5", "45.5,abc", "1,2,3"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidArgumentError):
            parse_coords(value)


class TestFormatResult:
    """Tests for format_result function."""

    def test_species_line(self) -> None:
        output = format_result(_result())
        assert "[rare  ] Snow Bunting (Plectrophenax nivalis)" in output
        assert "1 sighting(s)" in output
        assert "2024-05-01 08:30" in output
        assert "Sauvie Island" in output
        assert "(Near start)" in output

    def test_empty(self) -> None:
        assert format_result(_result(False)) == "No birds reported near this route."

    def test_incomplete(self) -> None:
        incomplete = AggregationIncomplete(
            failed_queries=4, total_queries=4, reason="all queries failed"
        )
        output = format_result(_result(False, incomplete=incomplete))
        assert "unreachable" in output
        assert "all queries failed" in output


class TestCmdInfo:
    """Tests for cmd_info function."""

    def test_returns_zero(self) -> None:
        """Info command returns exit code 0."""
        args = argparse.Namespace()
        exit_code = cmd_info(args)
        assert exit_code == 0

    def test_prints_app_info(self) -> None:
        """Info command prints application information."""
        args = argparse.Namespace()

        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            cmd_info(args)
            output = mock_stdout.getvalue()
            assert "Application" in output
            assert "eBird API key" in output


class TestCmdSightings:
    """Tests for cmd_sightings function."""

    def test_success_returns_zero(self) -> None:
        """A result with species returns exit code 0."""
        with patch("birdride.cli.route_sightings", return_value=_result()) as mock_flow:
            exit_code = cmd_sightings(_sightings_args())
        assert exit_code == 0
        mock_flow.assert_called_once_with(
            route="12345",
            coords=None,
            lookback_days=None,
            radius_km=None,
            max_points=None,
            proximity_miles=None,
            order=SortOrder.RECENT,
            notable_only=False,
        )

    def test_passes_coords(self) -> None:
        args = _sightings_args(route=None, coords="45.5,-122.6;45.6,-122.6", sort="rarity")
        with patch("birdride.cli.route_sightings", return_value=_result()) as mock_flow:
            cmd_sightings(args)
        kwargs = mock_flow.call_args.kwargs
        assert kwargs["coords"] == [(45.5, -122.6), (45.6, -122.6)]
        assert kwargs["route"] is None
        assert kwargs["order"] is SortOrder.RARITY

    @pytest.mark.parametrize(
        "overrides",
        [{"route": None}, {"coords": "45.5,-122.6"}],
    )
    def test_requires_exactly_one_input(self, overrides: dict[str, Any]) -> None:
        with patch("birdride.cli.route_sightings") as mock_flow:
            exit_code = cmd_sightings(_sightings_args(**overrides))
        assert exit_code == 2
        mock_flow.assert_not_called()

    def test_incomplete_returns_one(self) -> None:
        """Unreachable source is an error exit, not an empty success."""
        incomplete = AggregationIncomplete(
            failed_queries=4, total_queries=4, reason="all queries failed"
        )
        with patch(
            "birdride.cli.route_sightings", return_value=_result(False, incomplete=incomplete)
        ):
            assert cmd_sightings(_sightings_args()) == 1

    def test_route_error_returns_one(self) -> None:
        with (
            patch("birdride.cli.route_sightings", side_effect=RouteNotFoundError("12345", 404)),
            patch("sys.stderr", new=StringIO()) as mock_stderr,
        ):
            exit_code = cmd_sightings(_sightings_args())
        assert exit_code == 1
        assert "Route not found" in mock_stderr.getvalue()

    def test_json_output(self) -> None:
        with (
            patch("birdride.cli.route_sightings", return_value=_result()),
            patch("sys.stdout", new=StringIO()) as mock_stdout,
        ):
            cmd_sightings(_sightings_args(json=True))
        data = json.loads(mock_stdout.getvalue())
        assert data["species"][0]["species_code"] == "snobun"
        assert data["species"][0]["rarity"] == "rare"
        assert data["incomplete"] is None


class TestMain:
    """Tests for main function."""

    def test_no_command_prints_help(self) -> None:
        """No command prints help and returns 0."""
        with patch("sys.stdout", new=StringIO()):
            assert main([]) == 0

    def test_dispatches_info(self) -> None:
        with patch("sys.stdout", new=StringIO()):
            assert main(["info"]) == 0

    def test_dispatches_sightings(self) -> None:
        with (
            patch("birdride.cli.route_sightings", return_value=_result()),
            patch("sys.stdout", new=StringIO()) as mock_stdout,
        ):
            assert main(["sightings", "12345"]) == 0
        assert "Snow Bunting" in mock_stdout.getvalue()
