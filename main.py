"""Command-line entry point: ingest the corpus, serve the API, or launch the UI."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from newsrag.config import config
from newsrag.errors import NewsRAGError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="NewsRAG: question answering over scraped news articles.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser(
        "ingest", help="Chunk, embed and load the article corpus into Qdrant."
    )
    ingest.add_argument(
        "--corpus",
        type=Path,
        default=config.CORPUS_FILE,
        help="Path to the scraped corpus JSON (default: corpus.json).",
    )
    ingest.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Embedding calls in flight per article (default: 1).",
    )

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument(
        "--host",
        default=config.HOST,
        help="Bind address for the API server.",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=config.PORT,
        help="Port for the API server (default: 3001).",
    )

    ui = subparsers.add_parser("ui", help="Launch the Streamlit chat UI.")
    ui.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    ui.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui.set_defaults(headless=True)
    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("NewsRAG UI stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_ingest(args: argparse.Namespace, logger: Logger) -> int:
    """Load the corpus into the vector collection."""  # noqa: DOC201
    from newsrag.services import Services  # noqa: PLC0415

    services = Services.from_config()
    try:
        report = services.ingestion_pipeline(max_workers=args.workers).run(args.corpus)
    except (NewsRAGError, OSError, ValueError):
        logger.exception("Ingestion failed")
        return 1
    finally:
        services.close()

    logger.info(
        "Successfully processed %d articles into %d chunks and stored them in Qdrant.",
        report.documents_processed,
        report.chunks,
    )
    return 0


def run_server(args: argparse.Namespace) -> int:
    """Serve the HTTP API until interrupted."""  # noqa: DOC201
    import uvicorn  # noqa: PLC0415

    from newsrag.api import create_app  # noqa: PLC0415

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def run_ui(args: argparse.Namespace, logger: Logger) -> int:
    """Launch the Streamlit chat UI."""  # noqa: DOC201
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting NewsRAG Streamlit app at http://%s:%s (headless=%s)",
        args.address,
        args.port,
        args.headless,
    )

    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )

    return_code = run_streamlit(command, logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and dispatch the chosen command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate(require_generation=args.command != "ingest")
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.command == "ingest":
        return run_ingest(args, logger)
    if args.command == "serve":
        return run_server(args)
    return run_ui(args, logger)


if __name__ == "__main__":
    sys.exit(main())
