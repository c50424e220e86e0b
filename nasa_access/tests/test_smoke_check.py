"""
Unit tests for the proxy smoke-check CLI.
"""

import argparse
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from nasa_access.app import smoke_check


BASE_URL = "http://nasa.test/api/nasa"


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/resources/featured"):
        return httpx.Response(429, json={})
    return httpx.Response(200, json={"path": request.url.path})


class TestSmokeCheck:
    """Test cases for the smoke check."""

    @pytest.mark.asyncio
    async def test_check_summary(self):
        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(_handler))

        summary = await smoke_check.check(
            ["/apod", "/neo/browse", "/resources/featured"],
            {"page": "0"},
            base_url=BASE_URL,
            api_key="smoke-key",
            client=client,
        )

        assert summary["base_url"] == BASE_URL
        assert summary["planned"] == 3
        assert summary["succeeded"] == 2
        assert len(summary["failures"]) == 1
        assert summary["failures"][0]["endpoint"] == "/resources/featured"
        assert summary["failures"][0]["code"] == "RATE_LIMIT_ERROR"
        assert "cache" not in summary

    def test_parse_param(self):
        assert smoke_check._parse_param("date=2024-01-01") == ("date", "2024-01-01")

    def test_parse_param_rejects_missing_separator(self):
        with pytest.raises(argparse.ArgumentTypeError):
            smoke_check._parse_param("date")

    def test_main_prints_summary(self, capsys, tmp_path):
        summary = {"base_url": BASE_URL, "planned": 1, "succeeded": 1, "failures": []}
        output = tmp_path / "summary.json"

        with patch.object(smoke_check, "check", new=AsyncMock(return_value=summary)) as mock_check, \
                patch.object(smoke_check, "configure_logging"):
            exit_code = smoke_check.main([
                "--endpoint", "/apod",
                "--param", "date=2024-01-01",
                "--output", str(output),
            ])

        assert exit_code == smoke_check.EXIT_OK
        assert json.loads(capsys.readouterr().out) == summary
        assert json.loads(output.read_text()) == summary
        args, kwargs = mock_check.call_args
        assert args == (["/apod"], {"date": "2024-01-01"})

    def test_main_uses_default_endpoints(self):
        summary = {"base_url": BASE_URL, "planned": 3, "succeeded": 3, "failures": []}

        with patch.object(smoke_check, "check", new=AsyncMock(return_value=summary)) as mock_check, \
                patch.object(smoke_check, "configure_logging"):
            assert smoke_check.main([]) == smoke_check.EXIT_OK

        assert mock_check.call_args.args[0] == smoke_check.DEFAULT_ENDPOINTS

    def test_main_reports_endpoint_failures(self, capsys):
        summary = {
            "base_url": BASE_URL,
            "planned": 1,
            "succeeded": 0,
            "failures": [{"endpoint": "/apod", "code": "AUTH_ERROR"}],
        }

        with patch.object(smoke_check, "check", new=AsyncMock(return_value=summary)), \
                patch.object(smoke_check, "configure_logging"):
            assert smoke_check.main(["--endpoint", "/apod"]) == smoke_check.EXIT_ENDPOINT_FAILURES

        assert json.loads(capsys.readouterr().out)["failures"][0]["code"] == "AUTH_ERROR"
