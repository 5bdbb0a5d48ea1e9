# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Switchboard CLI.

Usage:
    switchboard ask QUERY [--user ID] [--context TEXT] [--json]
    switchboard classify QUERY [--context-present]
    switchboard serve [--host HOST] [--port PORT]
    switchboard version

Exit codes:
    0  success
    1  orchestration failed (primary and fallback backends)
    2  configuration error

Examples:
    switchboard ask "Go to example.com and tell me the page title"
    switchboard classify "Add a note to notion about the launch"
    switchboard serve --port 3001
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import platform
import sys
from typing import List, Optional

from switchboard.config import SwitchboardConfig, get_config, load_config_from_file
from switchboard.exceptions import ConfigurationError, SwitchboardError
from switchboard.utils.logger import LogFormat, configure_logging

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def get_version() -> str:
    """Get the Switchboard version."""
    import switchboard
    return getattr(switchboard, "__version__", "unknown")


def _load_config(args: argparse.Namespace) -> SwitchboardConfig:
    try:
        if getattr(args, "config", None):
            return load_config_from_file(args.config)
        return get_config()
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(str(e)) from e


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    version = get_version()
    if args.json:
        info = {
            "switchboard": version,
            "python": platform.python_version(),
            "platform": platform.system(),
        }
        print(json.dumps(info, indent=2))
    else:
        print(f"Switchboard {version}")
    return EXIT_OK


def cmd_classify(args: argparse.Namespace) -> int:
    """Classify a query and print the category."""
    from switchboard.agents.classifier import TaskClassifier
    from switchboard.llm.factory import BackendFactory
    from switchboard.types import BackendConfig, Provider

    try:
        config = _load_config(args)
        adapter = None
        if not args.heuristic:
            adapter = BackendFactory(config).create(BackendConfig(Provider.GEMINI, config.classifier_model))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    classifier = TaskClassifier(
        adapter,
        workspace_keywords=config.workspace_keywords,
        backend_mapping=config.backend_mapping(),
    )

    async def run():
        try:
            return await classifier.classify(args.query, args.context_present)
        finally:
            if adapter is not None:
                await adapter.close()

    category = asyncio.run(run())
    backend = config.backend_for(category)
    if args.json:
        print(json.dumps({"category": category.value, "backend": backend.identifier}))
    else:
        print(f"{category.value} -> {backend.identifier}")
    return EXIT_OK


def cmd_ask(args: argparse.Namespace) -> int:
    """Run one request through the orchestrator and print the answer."""
    from switchboard.agents.orchestrator import Orchestrator
    from switchboard.collaborators import InMemoryCredentialStore

    try:
        config = _load_config(args)
        credentials = InMemoryCredentialStore()
        token = args.workspace_token or os.environ.get("SWITCHBOARD_WORKSPACE_TOKEN")
        if token:
            credentials.set_token(args.user, config.mcp.credential_service, token)
        orchestrator = Orchestrator.from_config(config, credentials=credentials)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    async def run():
        async with orchestrator:
            return await orchestrator.handle(args.user, args.query, retrieved_context=args.context)

    try:
        result = asyncio.run(run())
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except SwitchboardError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.answer)
        print(
            f"\n[{result.category.value} | {result.backend} | {result.steps} step(s) | "
            f"{result.execution_time_ms:.0f}ms{' | fallback' if result.fell_back else ''}]",
            file=sys.stderr,
        )
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the browser automation HTTP service."""
    import uvicorn

    print(f"Starting browser service on {args.host}:{args.port}")
    uvicorn.run(
        "switchboard.service.app:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="switchboard",
        description="Switchboard - multi-backend LLM task orchestration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  ask         Run a request end to end
  classify    Show the category and backend a request is routed to
  serve       Start the browser automation service
  version     Show version information
""",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("SWITCHBOARD_LOG_LEVEL", "WARNING").upper(),
        help="Set logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        choices=[f.value for f in LogFormat],
        default=os.environ.get("SWITCHBOARD_LOG_FORMAT", "human").lower(),
        help="Log format (default: human)",
    )
    parser.add_argument("--config", help="Path to a YAML or JSON configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.add_argument("--json", action="store_true", help="Output as JSON")
    version_parser.set_defaults(func=cmd_version)

    ask_parser = subparsers.add_parser("ask", help="Run a request end to end")
    ask_parser.add_argument("query", help="Natural-language request")
    ask_parser.add_argument("--user", default="cli-user", help="User id (default: cli-user)")
    ask_parser.add_argument("--context", default=None, help="Retrieved context to pass along")
    ask_parser.add_argument("--workspace-token", default=None, help="External workspace token for MCP tools")
    ask_parser.add_argument("--json", action="store_true", help="Output as JSON")
    ask_parser.set_defaults(func=cmd_ask)

    classify_parser = subparsers.add_parser("classify", help="Classify a request")
    classify_parser.add_argument("query", help="Natural-language request")
    classify_parser.add_argument(
        "--context-present", action="store_true", help="Pretend retrieved context is available"
    )
    classify_parser.add_argument(
        "--heuristic", action="store_true", help="Use keyword classification without a model call"
    )
    classify_parser.add_argument("--json", action="store_true", help="Output as JSON")
    classify_parser.set_defaults(func=cmd_classify)

    serve_parser = subparsers.add_parser("serve", help="Start the browser automation service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve_parser.add_argument("--port", type=int, default=3001, help="Bind port")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, log_format=args.log_format)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(EXIT_OK)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
