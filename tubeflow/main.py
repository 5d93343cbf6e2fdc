"""Main entry point for the tubeflow application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from tubeflow.core.command_handler import CommandHandler

# --- Infrastructure Layer ---
from tubeflow.infrastructure.auth.static_token import StaticTokenProvider
from tubeflow.infrastructure.config.settings import (
    get_api_base_url, get_api_token, get_config, get_executor_config, load_configuration,
)
from tubeflow.infrastructure.monitoring.logger_setup import setup_logging
from tubeflow.infrastructure.notifications.console_notifier import ConsoleNotifier
from tubeflow.infrastructure.resilience.authenticated_executor import AuthenticatedRequestExecutor
from tubeflow.infrastructure.resilience.request_executor import ResilientRequestExecutor

logger = logging.getLogger(__name__)

EXIT_INVALID_INPUT = 2


@dataclass
class CliOptions:
    """Global options given before the command name."""
    base_url: Optional[str] = None
    timeout_ms: Optional[int] = None
    retries: Optional[int] = None
    no_notify: bool = False
    token: Optional[str] = None
    verbose: bool = False


# --- Dependency Injection Container (Manual) ---

def create_dependencies(options: CliOptions) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one command.

    This acts as the Composition Root.
    """
    # 1. Load Configuration First
    load_configuration()
    if options.verbose:
        log_level = logging.DEBUG
    else:
        log_level_name = str(get_config('logging.level', 'WARNING')).upper()
        log_level = getattr(logging, log_level_name, logging.WARNING)
    setup_logging(
        log_level=log_level,
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )

    dependencies: Dict[str, Any] = {}

    # 2. Infrastructure adapters
    dependencies['notifier'] = ConsoleNotifier()
    base_url = (options.base_url or get_api_base_url()).rstrip('/')
    config = get_executor_config(
        timeout_ms=options.timeout_ms,
        max_retries=options.retries,
        notify_on_error=False if options.no_notify else None,
    )
    dependencies['config'] = config

    # 3. Executor (authenticated when a token is available)
    token = options.token or get_api_token()
    if token:
        dependencies['executor'] = AuthenticatedRequestExecutor(
            token_provider=StaticTokenProvider(token),
            config=config,
            notifier=dependencies['notifier'],
            base_url=base_url,
        )
    else:
        dependencies['executor'] = ResilientRequestExecutor(
            config=config,
            notifier=dependencies['notifier'],
            base_url=base_url,
        )
    logger.debug(f"Executor created: {type(dependencies['executor']).__name__} for {base_url}")

    # 4. Command Handler
    dependencies['command_handler'] = CommandHandler(
        executor=dependencies['executor'],
        notifier=dependencies['notifier'],
        base_url=base_url,
    )
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="tubeflow",
    help="tubeflow: resilient client for the tube-manufacturing workflow API (leads, quotations, POs, dispatch orders, invoices).",
    add_completion=False,
)


def build_dependencies(ctx: typer.Context) -> Dict[str, Any]:
    """create_dependencies for the current command; invalid settings exit with code 2."""
    try:
        return create_dependencies(ctx.obj or CliOptions())
    except ValueError as e:
        logger.debug(f"Rejected executor settings: {e}")
        ConsoleNotifier().show_validation_error(f"Invalid settings: {e}")
        raise typer.Exit(code=EXIT_INVALID_INPUT)


def run_command(ctx: typer.Context, command: Callable[[CommandHandler], Awaitable[int]]) -> None:
    """Builds dependencies, runs an async handler method and exits with its code."""
    dependencies = build_dependencies(ctx)
    executor: ResilientRequestExecutor = dependencies['executor']
    handler: CommandHandler = dependencies['command_handler']

    async def _run() -> int:
        async with executor:
            return await command(handler)

    exit_code = asyncio.run(_run())
    raise typer.Exit(code=exit_code)


def parse_json_body(data: Optional[str]) -> Any:
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        ConsoleNotifier().show_validation_error(f"--data is not valid JSON: {e}")
        raise typer.Exit(code=EXIT_INVALID_INPUT)


# --- CLI Commands ---

EndpointArgument = Annotated[
    str,
    typer.Argument(help="Endpoint name (e.g. 'leads', 'do1/42'), path or absolute URL."),
]
DataOption = Annotated[
    Optional[str],
    typer.Option("--data", "-d", help="JSON request body."),
]


@app.command()
def get(ctx: typer.Context, endpoint: EndpointArgument):
    """Fetch a resource."""
    run_command(ctx, lambda handler: handler.handle_request("GET", endpoint))


@app.command()
def post(ctx: typer.Context, endpoint: EndpointArgument, data: DataOption = None):
    """Create a resource from a JSON body."""
    body = parse_json_body(data)
    run_command(ctx, lambda handler: handler.handle_request("POST", endpoint, body))


@app.command()
def put(ctx: typer.Context, endpoint: EndpointArgument, data: DataOption = None):
    """Replace a resource with a JSON body."""
    body = parse_json_body(data)
    run_command(ctx, lambda handler: handler.handle_request("PUT", endpoint, body))


@app.command()
def delete(ctx: typer.Context, endpoint: EndpointArgument):
    """Delete a resource."""
    run_command(ctx, lambda handler: handler.handle_request("DELETE", endpoint))


@app.command()
def health(ctx: typer.Context):
    """Check that the backend is reachable."""
    run_command(ctx, lambda handler: handler.handle_health())


@app.command()
def endpoints(ctx: typer.Context):
    """List the registered workflow endpoints."""
    dependencies = build_dependencies(ctx)
    dependencies['command_handler'].handle_list_endpoints()
    asyncio.run(dependencies['executor'].aclose())


@app.callback()
def main_callback(
    ctx: typer.Context,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Backend base URL (default from API_URL or config).")] = None,
    timeout_ms: Annotated[Optional[int], typer.Option("--timeout-ms", min=1, help="Per-attempt timeout in milliseconds.")] = None,
    retries: Annotated[Optional[int], typer.Option("--retries", min=0, help="Retries after the first attempt.")] = None,
    no_notify: Annotated[bool, typer.Option("--no-notify", help="Do not show error notifications.")] = False,
    token: Annotated[Optional[str], typer.Option("--token", help="Bearer token for authenticated requests.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Resilient client for the workflow backend."""
    ctx.obj = CliOptions(
        base_url=base_url,
        timeout_ms=timeout_ms,
        retries=retries,
        no_notify=no_notify,
        token=token,
        verbose=verbose,
    )


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
