"""Command-line entry point: run the server or stream a file to it."""

import argparse
import asyncio
import sys

import uvicorn

from scribe.client import ClientError, RecordingStreamClient
from scribe.core.config import get_settings
from scribe.core.utils import configure_logging


def _serve(args: argparse.Namespace) -> int:
    settings = get_settings()
    uvicorn.run(
        "scribe.api.app:app",
        host=args.host or settings.app_host,
        port=args.port or settings.app_port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )
    return 0


def _stream(args: argparse.Namespace) -> int:
    configure_logging(get_settings().log_level)

    async def run() -> dict:
        async with RecordingStreamClient(
            base_url=args.url,
            user_id=args.user_id,
            api_key=args.api_key,
            chunk_size=args.chunk_size,
        ) as client:
            return await client.stream_file(args.file, title=args.title, timeout=args.timeout)

    try:
        result = asyncio.run(run())
    except ClientError as exc:
        print(f"Error ({exc.category}): {exc.message}", file=sys.stderr)
        return 1

    print(f"Duration: {result['duration']}s\n")
    print("## Transcript\n")
    print(result["transcript"])
    print("\n## Summary\n")
    print(result["summary"])
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Scribe streaming recording service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API and WebSocket server")
    serve.add_argument("--host", type=str, default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Bind port")
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    serve.set_defaults(func=_serve)

    stream = subparsers.add_parser("stream", help="Stream an audio file and print the summary")
    stream.add_argument("file", type=str, help="Audio file (e.g. WebM/Opus from MediaRecorder)")
    stream.add_argument("--title", type=str, default=None, help="Recording title")
    stream.add_argument("--url", type=str, default="http://localhost:5000", help="Server URL")
    stream.add_argument("--user-id", type=str, default="local-user", help="User identity")
    stream.add_argument("--api-key", type=str, default=None, help="Bearer key for /api/v1")
    stream.add_argument(
        "--chunk-size", type=int, default=64 * 1024, help="Bytes per chunk (default: 65536)"
    )
    stream.add_argument(
        "--timeout", type=float, default=600.0, help="Seconds to wait for the summary"
    )
    stream.set_defaults(func=_stream)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
