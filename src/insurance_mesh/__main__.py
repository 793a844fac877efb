"""CLI entry point for insurance-mesh.

This module provides the command-line interface for starting the mesh gateway
or one of the domain agent servers, and a ``query`` client that sends one
request through a mesh built in-process. It can be invoked as
`insurance-mesh` (via the script entry point) or `python -m insurance_mesh`.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

import uvicorn

from insurance_mesh import __version__, create_agent_app, create_app
from insurance_mesh.app import build_mesh_service
from insurance_mesh.config import MeshSettings
from insurance_mesh.domains import DEFAULT_PORTS, DOMAIN_REGISTRIES
from insurance_mesh.errors import MeshError
from insurance_mesh.pipeline import ExecutionMode, render_result

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
QUERY = "query"
RELOAD_FACTORY = "insurance_mesh.app:serve_app"


def configure_logging(level_name: str) -> int:
    """Configure the root logger and the insurance_mesh loggers.

    Args:
        level_name: One of DEBUG, INFO, WARNING, ERROR, CRITICAL

    Returns:
        int: The configured numeric level
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("insurance_mesh").setLevel(level)
    return level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="insurance-mesh",
        description="Natural-language gateway and domain agents for insurance services",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"insurance-mesh {__version__}",
    )

    parser.add_argument(
        "service",
        nargs="?",
        default="gateway",
        choices=["gateway", QUERY, *DOMAIN_REGISTRIES],
        help=(
            "What to run: the mesh gateway (default), one domain agent, or "
            "'query' to send one request and print the answer"
        ),
    )

    parser.add_argument(
        "text",
        nargs="?",
        default=None,
        help="Request text for 'query' (e.g. \"check customer CUST-1's policies\")",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via MESH_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=(
            "Port to bind the server to (gateway default: 8000; agents default "
            "to 7871-7874; can be set via MESH_PORT)"
        ),
    )

    parser.add_argument(
        "--agent",
        dest="agent_endpoints",
        action="append",
        default=None,
        metavar="URL",
        help="Agent endpoint for the gateway to register (repeatable, replaces MESH_AGENT_ENDPOINTS)",
    )

    parser.add_argument(
        "--embedded",
        action="store_true",
        help="Run all domain agents inside the gateway process instead of over HTTP",
    )

    parser.add_argument(
        "--scorer",
        choices=["keyword", "ollama"],
        default=None,
        help="Intent scorer (default: keyword, can be set via MESH_SCORER)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL for the ollama scorer (can be set via MESH_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--pipeline",
        action="store_true",
        help="query: plan the text as a compound request instead of one action",
    )

    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ExecutionMode],
        default=None,
        help="query: force the pipeline execution mode (implies --pipeline)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO, can be set via MESH_LOG_LEVEL)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (uvicorn --reload)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse arguments, checking that request text is only given to 'query'."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.service == QUERY and not args.text:
        parser.error("query requires the request text")
    if args.service != QUERY and args.text is not None:
        parser.error(f"unexpected argument: {args.text!r}")
    return args


def settings_from_args(args: argparse.Namespace) -> MeshSettings:
    """Build settings where CLI arguments override environment variables."""
    agent = args.service in DOMAIN_REGISTRIES
    settings_kwargs: dict = {}
    if args.host is not None:
        settings_kwargs["host"] = args.host
    if args.port is not None:
        settings_kwargs["port"] = args.port
    elif agent:
        settings_kwargs["port"] = DEFAULT_PORTS[args.service]
    if agent:
        settings_kwargs["agent_name"] = args.service
    if args.agent_endpoints is not None:
        settings_kwargs["agent_endpoints"] = args.agent_endpoints
    if args.embedded:
        settings_kwargs["embedded_agents"] = True
        if args.agent_endpoints is None:
            settings_kwargs["agent_endpoints"] = []
    if args.scorer is not None:
        settings_kwargs["scorer"] = args.scorer
    if args.ollama_host is not None:
        settings_kwargs["ollama_host"] = args.ollama_host
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level
    return MeshSettings(**settings_kwargs)


def settings_env(settings: MeshSettings) -> dict[str, str]:
    """Render settings as MESH_ environment variables."""
    env = {}
    for name, value in settings.model_dump(mode="json").items():
        if value is None:
            continue
        if isinstance(value, (list, dict, bool)):
            value = json.dumps(value)
        env[f"MESH_{name.upper()}"] = str(value)
    return env


async def run_query(
    settings: MeshSettings,
    text: str,
    pipeline: bool = False,
    mode: ExecutionMode | None = None,
) -> tuple[str, bool]:
    """Send one request through a mesh built from the settings.

    Args:
        settings: Mesh settings naming the agents to register
        text: The request text
        pipeline: Plan the text as a compound request
        mode: Forced execution mode for the pipeline

    Returns:
        tuple: The printable answer, and whether every step completed

    Raises:
        MeshError: If the request could not be resolved or invoked
    """
    service, ollama_client = await build_mesh_service(settings)
    try:
        if not pipeline and mode is None:
            invocation = await service.resolve_and_invoke(text)
            return f"[{invocation.call.action}]\n{render_result(invocation.result)}", True

        result = await service.run_pipeline(text, mode=mode)
        lines = [render_result(result.merged) if result.merged else ""]
        for step in result.steps:
            if not step.ok:
                reason = f": {step.error.message}" if step.error else ""
                lines.append(f"! step {step.index} ({step.text}) {step.status.value}{reason}")
        return "\n".join(line for line in lines if line), not result.partial_failure
    finally:
        await service.close()
        if ollama_client is not None:
            await ollama_client.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the insurance-mesh CLI.

    Parses command-line arguments and either starts uvicorn with the gateway
    or the selected domain agent application, or runs a single query.

    Returns:
        int: Process exit code
    """
    args = parse_args(argv)
    settings = settings_from_args(args)
    configure_logging(settings.log_level)

    if args.service == QUERY:
        mode = ExecutionMode(args.mode) if args.mode else None
        try:
            output, ok = asyncio.run(run_query(settings, args.text, args.pipeline, mode))
        except MeshError as e:
            print(f"error: {e.code}: {e.message}", file=sys.stderr)
            return 1
        print(output)
        return 0 if ok else 1

    if args.reload:
        # The reloader imports the app by name in a fresh process
        os.environ.update(settings_env(settings))
        uvicorn.run(
            RELOAD_FACTORY,
            factory=True,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
            reload=True,
        )
        return 0

    if settings.agent_name:
        app = create_agent_app(settings.agent_name, settings=settings)
    else:
        app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
