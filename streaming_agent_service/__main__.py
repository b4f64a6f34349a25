"""Entry point when the package is executed as a module."""

import os
import sys

import click
import uvicorn

from .platform.settings import Settings


@click.command()
@click.option("--reload", is_flag=True)
@click.option("--host", default=None, help="Bind address (overrides APP_HTTP__HOST).")
@click.option("--port", type=int, default=None, help="Bind port (overrides APP_HTTP__PORT).")
@click.option(
    "--strategy",
    type=click.Choice(["native", "manual"]),
    default=None,
    help="Tool loop strategy (overrides AGENT__STRATEGY).",
)
def main(reload=False, host=None, port=None, strategy=None):
    # The app factory reads settings from the environment, including in reload workers
    overrides = {
        "APP_HTTP__HOST": host,
        "APP_HTTP__PORT": str(port) if port is not None else None,
        "AGENT__STRATEGY": strategy,
    }
    os.environ.update({key: value for key, value in overrides.items() if value is not None})

    settings = Settings()

    uvicorn.run(
        "streaming_agent_service:app",
        loop="uvloop",
        factory=True,
        host=settings.app_http.host,
        port=settings.app_http.port,
        log_level=settings.app_http.log_level.lower(),
        reload=reload,
    )


if __name__ == "__main__":
    sys.exit(main())
