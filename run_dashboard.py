"""Runs the LearnFlow admin app."""
from __future__ import annotations

import argparse
import os

import uvicorn

from learnflow.config import Settings
from learnflow.context import create_context
from learnflow.dashboard import create_dashboard_app
from learnflow.integrations.litestar import configure_learnflow
from learnflow.logging_config import configure_logging


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the LearnFlow admin app")
    parser.add_argument(
        "--redis-url",
        default=os.getenv("LEARNFLOW_REDIS_URL"),
        help="Redis URL for the named caches (env: LEARNFLOW_REDIS_URL).",
    )
    parser.add_argument(
        "--log-format",
        choices=["plain", "json"],
        default=os.getenv("LOG_FORMAT", "plain"),
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    return parser


def create_app(settings: Settings | None = None, debug: bool = False):
    context = create_context(settings)
    app = create_dashboard_app(context, debug=debug)
    configure_learnflow(app, context)
    return app


if __name__ == "__main__":
    args = build_arg_parser().parse_args()
    configure_logging(fmt=args.log_format)
    settings = Settings.from_env()
    if args.redis_url:
        settings.redis_url = args.redis_url
    uvicorn.run(create_app(settings), host=args.host, port=args.port)
