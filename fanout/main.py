"""Composition root for the webhook fan-out proxy.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Command-line parsing (typer) layered over environment settings
- Route loading and validation
- Adapter instantiation and route handler wiring
- Serving until a shutdown signal, then draining in-flight forwards

Exit codes:
    0: Normal shutdown after all forwards drained
    1: Startup/config failure, listener failure, or forced termination
    2: Usage error
"""

import asyncio
import logging
import sys

import typer
from pydantic import ValidationError

from fanout.adapters.forward.httpx_client import HttpxForwardClient
from fanout.adapters.metrics.prometheus import PrometheusMetrics
from fanout.adapters.routes.yaml_loader import RouteConfigError, load_routes
from fanout.adapters.webhook.http_server import FanoutHTTPServer, parse_bind_address
from fanout.config import Settings
from fanout.core.route_handler import RouteHandler
from fanout.core.shutdown import ShutdownCoordinator

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

app = typer.Typer(
    name="webhook-fanout-proxy",
    help="webhook-fanout-proxy is a service to forward webhook events to given targets.",
    add_completion=False,
)


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    # Map string level to logging constant
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )


async def bootstrap(settings: Settings) -> int:
    """Load routes, wire adapters, serve, and drain on shutdown.

    Steps:
    1. Load and validate routes from the config file
    2. Instantiate the metrics sink and one forward client per route
    3. Build route handlers, the HTTP server and the shutdown coordinator
    4. Serve until the first shutdown signal
    5. Close the listener and drain every route

    Returns:
        Process exit code.
    """
    logger = logging.getLogger(__name__)

    # Step 1: Load routes
    try:
        routes = load_routes(settings.config_path)
    except RouteConfigError as e:
        logger.error(f"Unable to load webhooks: {e}")
        return 1

    try:
        host, port = parse_bind_address(settings.http_bind_address)
    except ValueError as e:
        logger.error(f"Unable to start server: {e}")
        return 1

    # Step 2: Instantiate adapters
    metrics = PrometheusMetrics()
    clients: list[HttpxForwardClient] = []

    try:
        # Step 3: Wire handlers
        handlers: list[RouteHandler] = []
        for route in routes:
            client = HttpxForwardClient(
                route=route.path,
                metrics=metrics,
                timeout=settings.forward_timeout_seconds,
            )
            clients.append(client)
            try:
                handlers.append(RouteHandler(route, client, metrics))
            except ValueError as e:
                logger.error(f"Unable to create webhook {route.path}: {e}")
                return 1

        server = FanoutHTTPServer(
            handlers=handlers,
            metrics=metrics,
            host=host,
            port=port,
            read_timeout=settings.request_read_timeout_seconds,
        )
        coordinator = ShutdownCoordinator(handlers, stop_listener=server.stop)
        coordinator.install_signal_handlers()

        # Step 4: Serve
        try:
            await server.start()
        except OSError as e:
            logger.error(f"Unable to start server: {e}")
            return 1

        serving = server.serving
        if serving is None:
            logger.error("Web server did not start")
            return 1

        shutdown = asyncio.create_task(coordinator.wait_for_shutdown())
        done, _ = await asyncio.wait(
            {shutdown, serving}, return_when=asyncio.FIRST_COMPLETED
        )

        exit_code = 0
        if shutdown not in done:
            shutdown.cancel()
            error = serving.exception()
            logger.error(f"Web server stopped unexpectedly: {error}")
            exit_code = 1

        # Step 5: Drain
        await coordinator.drain()
        return exit_code

    finally:
        for client in clients:
            await client.close()


def _validate_log_level(value: str | None) -> str | None:
    if value is None:
        return None
    if value.strip().upper() not in _LOG_LEVELS:
        raise typer.BadParameter(f"must be one of {', '.join(_LOG_LEVELS).lower()}")
    return value.strip().upper()


def _validate_bind_address(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        parse_bind_address(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    return value


@app.command()
def serve(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Log level (default: 'info').",
        callback=_validate_log_level,
    ),
    config: str = typer.Option(
        None,
        "--config",
        help="Absolute path to the config file "
        "(default: '/etc/webhook-fanout-proxy/config.yaml').",
    ),
    http_bind_address: str = typer.Option(
        None,
        "--http-bind-address",
        help="The address the web server binds to (default: ':9001').",
        callback=_validate_bind_address,
    ),
) -> None:
    """Forward webhook events to the configured targets."""
    overrides = {
        "log_level": log_level,
        "config_path": config,
        "http_bind_address": http_bind_address,
    }
    try:
        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        typer.echo(f"Invalid settings: {e}", err=True)
        raise typer.Exit(code=2) from None

    configure_logging(settings.log_level, settings.log_format)

    exit_code = asyncio.run(bootstrap(settings))
    raise typer.Exit(code=exit_code)


def main() -> None:
    """Application entry point."""
    app()


if __name__ == "__main__":
    main()
