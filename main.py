"""
llm-eval-engine - Main Entry Point

Runs the HTTP API or executes a run file from the command line.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from eval_engine.core.config import settings


class ConsoleCallbacks:
    """Prints run progress to stdout."""

    async def on_progress(self, progress) -> None:
        print(
            f"▶️  [{progress.current}/{progress.total}] "
            f"iteration {progress.iteration}: {progress.test_case_name}"
        )

    async def on_result(self, result) -> None:
        mark = "✅" if result.passed else "❌"
        print(f"   {mark} {result.test_case_name} ({result.response_time}ms)")
        for error in result.validation_errors:
            print(f"      - {error}")

    async def on_error(self, error: Exception, test_case_id: Optional[str] = None) -> None:
        print(f"   ⚠️  {test_case_id or 'run'}: {error}")


async def run_cli_mode(run_file: Path, output_file: Optional[Path] = None) -> int:
    """
    Execute the run described by a JSON run file.

    Returns:
        Process exit code: 0 when every case passed, 1 otherwise
    """
    from eval_engine.api.v1.converters import convert_run_request
    from eval_engine.api.v1.schemas.requests import RunRequest
    from eval_engine.core.logfire_config import initialize_logfire
    from eval_engine.core.logger import setup_logging
    from eval_engine.services.streaming_executor import StreamingExecutor

    setup_logging()
    print("🧪 llm-eval-engine - CLI Mode")
    print("=" * 50)

    results = initialize_logfire(app=None)
    if results["configured"]:
        enabled = [
            name
            for name, on in results["instrumentation"].items()
            if on and name != "fastapi"
        ]
        if enabled:
            print(f"🔍 Monitoring enabled for: {', '.join(enabled)}")

    request = RunRequest.model_validate_json(run_file.read_text(encoding="utf-8"))
    params = convert_run_request(request)
    print(
        f"📋 Running {len(params.test_cases)} test case(s) x {params.iterations} iteration(s)"
    )

    executor = StreamingExecutor()
    try:
        outcome = await executor.run(params, ConsoleCallbacks())
    finally:
        await executor.test_case_executor.endpoint_service.aclose()

    summary = outcome.test_run.summary
    print()
    print(f"🏁 Status: {outcome.test_run.status}")
    print(f"   Passed: {summary.passed}/{summary.total}  Failed: {summary.failed}")
    print(f"   Avg response time: {summary.avg_response_time}ms")
    if summary.avg_score is not None:
        print(f"   Avg judge score: {summary.avg_score}")

    if output_file:
        output_file.write_text(
            json.dumps(outcome.test_run.to_payload(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        print(f"💾 Run written to {output_file}")

    return 0 if summary.failed == 0 and not outcome.aborted else 1


def create_app() -> FastAPI:
    """
    Factory function called by uvicorn in factory mode.

    Returns:
        FastAPI: Configured application instance
    """
    from eval_engine.api.factory import create_api
    from eval_engine.core.logger import setup_logging

    setup_logging()
    return create_api(
        title=settings.api__title,
        description=settings.api__description,
        version=settings.api__version,
        docs_url=settings.api__docs_url,
        redoc_url=settings.api__redoc_url,
        mount_prefix="/api",
    )


def main() -> None:
    """
    Main entry point with CLI argument parsing.
    """
    parser = argparse.ArgumentParser(
        description="llm-eval-engine - prompt and endpoint test runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --mode api                              # Run as FastAPI server
  python main.py --mode api --host 127.0.0.1 --port 3000
  python main.py --mode cli --run-file run.json          # Execute a run file
  python main.py --mode cli --run-file run.json --output result.json
        """,
    )

    parser.add_argument(
        "--mode",
        choices=["cli", "api"],
        default="api",
        help="Run mode: 'api' for the FastAPI server, 'cli' to execute a run file (default: api)",
    )
    parser.add_argument("--run-file", type=Path, help="Run request JSON (CLI mode)")
    parser.add_argument("--output", type=Path, help="Write the finished run as JSON (CLI mode)")
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the API server (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port to bind the API server (default: 8080)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (API mode only)",
    )

    args = parser.parse_args()

    if args.mode == "cli":
        if args.run_file is None:
            parser.error("--run-file is required in CLI mode")
        try:
            exit_code = asyncio.run(run_cli_mode(args.run_file, args.output))
        except KeyboardInterrupt:
            print("\n👋 Interrupted")
            exit_code = 130
        except Exception as e:
            print(f"❌ Error running CLI mode: {e}")
            exit_code = 1
        sys.exit(exit_code)

    print("🚀 Starting llm-eval-engine API Server...")
    print(f"📍 Server will run on {args.host}:{args.port}")
    print(f"🌍 Environment: {settings.environment}")
    print(f"🐛 Debug mode: {settings.debug}")
    print(f"📚 API docs: http://{args.host}:{args.port}{settings.api__docs_url}")
    print()

    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload or settings.debug,
        log_level=str(settings.log_level).lower(),
    )


if __name__ == "__main__":
    main()
