"""Command-line entry point running the account service."""

import logging
from typing import Optional, Tuple

import typer
import uvicorn

from .api import create_app
from .config import Settings

app = typer.Typer(
    name="accounts",
    help="User account management service",
    add_completion=False,
)


def split_listen(listen: str) -> Tuple[str, int]:
    """Split ``host:port``; an empty host listens on all interfaces."""
    host, sep, port = listen.rpartition(":")
    if not sep or not port.isdigit():
        raise typer.BadParameter(f"invalid listen address: {listen!r}")
    return host or "0.0.0.0", int(port)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def main(
    listen: Optional[str] = typer.Option(None, "--listen", help="Set listening host"),
    dsn: Optional[str] = typer.Option(
        None, "--dsn", help="Set database connection DSN (SQLAlchemy URL)"
    ),
    root_name: Optional[str] = typer.Option(
        None, "--root-name", help="User name for the root account"
    ),
    root_email: Optional[str] = typer.Option(
        None, "--root-email", help="Email for the root account"
    ),
    root_password: Optional[str] = typer.Option(
        None, "--root-password", help="Password for the root account"
    ),
    root_institute: Optional[str] = typer.Option(
        None, "--root-institute", help="Institute for the root account"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Serve the account API."""
    overrides = {
        "listen": listen,
        "database_url": dsn,
        "root_name": root_name,
        "root_email": root_email,
        "root_password": root_password,
        "root_institute": root_institute,
        "debug": True if debug else None,
    }
    settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    setup_logging(settings.debug)

    host, port = split_listen(settings.listen)
    logging.getLogger(__name__).info("listening on %s:%d", host, port)
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":  # pragma: no cover
    app()
