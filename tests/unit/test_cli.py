"""Unit tests for the ``scribe`` command-line entry point."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scribe.cli import main
from scribe.client import ClientError


def _patched_client(result=None, error=None):
    stream_client = MagicMock()
    stream_client.stream_file = AsyncMock(return_value=result, side_effect=error)
    client_cls = MagicMock()
    client_cls.return_value.__aenter__.return_value = stream_client
    return client_cls, stream_client


class TestServe:
    def test_runs_uvicorn(self):
        with patch("scribe.cli.uvicorn.run") as run:
            assert main(["serve", "--port", "9000"]) == 0

        args, kwargs = run.call_args
        assert args == ("scribe.api.app:app",)
        assert kwargs["port"] == 9000
        assert kwargs["reload"] is False


class TestStream:
    def test_prints_summary(self, tmp_path, capsys):
        audio = tmp_path / "a.webm"
        audio.write_bytes(b"data")
        client_cls, stream_client = _patched_client(
            result={"transcript": "hello", "summary": "## Overview\nhi", "duration": 3}
        )

        with patch("scribe.cli.RecordingStreamClient", client_cls):
            code = main(["stream", str(audio), "--title", "Demo", "--user-id", "u1"])

        assert code == 0
        out = capsys.readouterr().out
        assert "hello" in out
        assert "## Overview" in out
        stream_client.stream_file.assert_awaited_once_with(str(audio), title="Demo", timeout=600.0)
        assert client_cls.call_args.kwargs["user_id"] == "u1"

    def test_client_error_exit_code(self, tmp_path, capsys):
        client_cls, _ = _patched_client(error=ClientError("boom", category="recording"))

        with patch("scribe.cli.RecordingStreamClient", client_cls):
            code = main(["stream", str(tmp_path / "x.webm")])

        assert code == 1
        assert "boom" in capsys.readouterr().err

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            main([])
