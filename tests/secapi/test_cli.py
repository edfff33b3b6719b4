"""Tests for secapi/cli/main.py."""

import json

import httpx
import pandas as pd
import pytest
from typer.testing import CliRunner

from secapi import __version__
from secapi.cli import main as cli_main
from secapi.client import Client
from secapi.config.settings import ClientSettings

from .conftest import TEST_API_KEY
from .fixtures.api_responses import MAPPING_AAPL, query_response
from .fixtures.fakes import FakeClock, RecordingHandler

runner = CliRunner()


def paged(total: int, page_size: int = 50):
    def handler(request: httpx.Request) -> httpx.Response:
        start = int(json.loads(request.content).get("from", 0))
        count = max(min(page_size, total - start), 0)
        return httpx.Response(200, json=query_response(start, count, total))

    return handler


@pytest.fixture
def use_handler(monkeypatch):
    """Point the CLI at a mock transport."""

    def _use(handler, **overrides) -> RecordingHandler:
        recording = handler if isinstance(handler, RecordingHandler) else RecordingHandler(handler)
        settings = ClientSettings(api_key=TEST_API_KEY, _env_file=None, **overrides)
        clock = FakeClock()
        monkeypatch.setattr(
            cli_main,
            "_build_client",
            lambda: Client(
                settings,
                http_transport=httpx.MockTransport(recording),
                clock=clock,
                sleep=clock.sleep,
            ),
        )
        return recording

    return _use


class TestVersion:
    def test_version(self):
        result = runner.invoke(cli_main.app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestSearch:
    def test_json_output(self, use_handler):
        handler = use_handler(paged(3))
        result = runner.invoke(cli_main.app, ["search", "--ticker", "aapl", "--form", "10-K", "--json"])

        assert result.exit_code == 0, result.output
        filings = json.loads(result.output)
        assert [f["accession_number"] for f in filings] == [
            "0000320193-23-000000",
            "0000320193-23-000001",
            "0000320193-23-000002",
        ]
        assert handler.bodies[0]["query"] == 'ticker:AAPL AND formType:"10-K"'

    def test_limit_fetches_only_needed_pages(self, use_handler):
        handler = use_handler(paged(500))
        result = runner.invoke(cli_main.app, ["search", "-t", "AAPL", "--limit", "5", "--json"])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)) == 5
        assert len(handler.requests) == 1

    def test_table_output(self, use_handler):
        use_handler(paged(1))
        result = runner.invoke(cli_main.app, ["search", "--ticker", "AAPL"])
        assert result.exit_code == 0, result.output
        assert "1 of 1 filings" in result.output

    def test_raw_query(self, use_handler):
        handler = use_handler(paged(1))
        result = runner.invoke(cli_main.app, ["search", "--query", 'formType:"8-K"', "--json"])
        assert result.exit_code == 0, result.output
        assert handler.bodies[0] == {"query": 'formType:"8-K"'}

    def test_no_filters(self, use_handler):
        use_handler(paged(1))
        result = runner.invoke(cli_main.app, ["search"])
        assert result.exit_code == 1

    def test_half_date_range(self, use_handler):
        use_handler(paged(1))
        result = runner.invoke(cli_main.app, ["search", "--from", "2023-01-01"])
        assert result.exit_code == 1

    def test_rate_limit_exit_code(self, use_handler):
        use_handler(RecordingHandler(httpx.Response(429, headers={"Retry-After": "1"})), retry_max_attempts=1)
        result = runner.invoke(cli_main.app, ["search", "--ticker", "AAPL"])
        assert result.exit_code == 2

    def test_auth_error_exit_code(self, use_handler):
        use_handler(RecordingHandler(httpx.Response(401)))
        result = runner.invoke(cli_main.app, ["search", "--ticker", "AAPL"])
        assert result.exit_code == 1

    def test_missing_api_key(self):
        result = runner.invoke(cli_main.app, ["search", "--ticker", "AAPL"])
        assert result.exit_code == 1


class TestMapping:
    def test_ticker(self, use_handler):
        handler = use_handler(RecordingHandler(httpx.Response(200, json=MAPPING_AAPL)))
        result = runner.invoke(cli_main.app, ["mapping", "ticker", "AAPL"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)[0]["cusip"] == "037833100"
        assert handler.requests[0].url.path == "/mapping/ticker/AAPL"

    def test_invalid_kind(self, use_handler):
        use_handler(RecordingHandler())
        result = runner.invoke(cli_main.app, ["mapping", "isin", "US0378331005"])
        assert result.exit_code == 1


class TestBackfill:
    def test_exports_all_pages(self, use_handler, tmp_path):
        handler = use_handler(paged(120))
        output = tmp_path / "aapl.csv"

        result = runner.invoke(
            cli_main.app,
            ["backfill", "-t", "AAPL", "-o", str(output), "--batch-size", "40", "--quiet"],
        )

        assert result.exit_code == 0, result.output
        assert len(pd.read_csv(output)) == 120
        assert len(handler.requests) == 3

    def test_max(self, use_handler, tmp_path):
        use_handler(paged(120))
        output = tmp_path / "aapl.csv"
        result = runner.invoke(cli_main.app, ["backfill", "-t", "AAPL", "-o", str(output), "--max", "10", "--quiet"])
        assert result.exit_code == 0, result.output
        assert len(pd.read_csv(output)) == 10

    def test_rate_limit_keeps_progress(self, use_handler, tmp_path):
        """Filings fetched before the rate limit are written, exit code 2."""
        handler = RecordingHandler(
            httpx.Response(200, json=query_response(0, 50, 120)),
            httpx.Response(429, headers={"Retry-After": "1"}),
        )
        use_handler(handler, retry_max_attempts=1)
        output = tmp_path / "aapl.csv"

        result = runner.invoke(cli_main.app, ["backfill", "-t", "AAPL", "-o", str(output)])

        assert result.exit_code == 2
        assert len(pd.read_csv(output)) == 50
