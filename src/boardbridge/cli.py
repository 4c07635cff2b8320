#!/usr/bin/env python3
"""
Main CLI entry point for the boardbridge server.
"""

import asyncio
import os
import sys

import click
import uvicorn

from boardbridge import __version__
from boardbridge.directory.models import Role, normalize_email
from boardbridge.directory.store import DirectoryStore, DuplicateUserError, SqlDirectoryStore
from boardbridge.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _get_store() -> DirectoryStore:
    from boardbridge.database.connection import get_session_factory

    return SqlDirectoryStore(get_session_factory())


@click.group()
@click.version_option(version=__version__, prog_name="boardbridge")
def cli() -> None:
    """boardbridge CLI - run the session server and manage directory users."""
    pass


@cli.command()
@click.option(
    "--host",
    default="0.0.0.0",
    help="Host to bind to (default: 0.0.0.0)",
)
@click.option(
    "--port",
    default=8089,
    type=int,
    help="Port to bind to (default: 8089)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
@click.option(
    "--workers",
    default=1,
    type=int,
    help="Number of worker processes (default: 1)",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(
    host: str,
    port: int,
    reload: bool,
    workers: int,
    log_level: str,
) -> None:
    """Start the boardbridge API server."""

    configure_logging(debug=(log_level == "debug"))

    logger.info(
        "Starting boardbridge API server",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )

    # Worker and reload processes import the app fresh and read settings from the environment
    if log_level == "debug":
        os.environ["BOARDBRIDGE_DEBUG"] = "true"
        os.environ["BOARDBRIDGE_LOG_LEVEL"] = "debug"
    else:
        os.environ.setdefault("BOARDBRIDGE_DEBUG", "false")
        os.environ.setdefault("BOARDBRIDGE_LOG_LEVEL", log_level)

    if workers > 1:
        # Provisioning is serialized per process only; see the EmailConflict path
        logger.warning("Running multiple workers", workers=workers)

    try:
        if reload or workers > 1:
            uvicorn.run(
                "boardbridge.api.app:app",
                host=host,
                port=port,
                reload=reload,
                workers=(workers if not reload else 1),  # reload doesn't work with multiple workers
                log_level=log_level,
                access_log=True,
            )
        else:
            from boardbridge.api.app import app

            uvicorn.run(
                app,
                host=host,
                port=port,
                log_level=log_level,
                access_log=True,
            )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.group()
def users() -> None:
    """Manage directory users."""
    pass


@users.command("add")
@click.option("--email", required=True, help="Email address of the user")
@click.option("--name", required=True, help="Display name of the user")
@click.option(
    "--role",
    default=Role.CLIENT.value,
    type=click.Choice([r.value for r in Role]),
    help="Directory role (default: client)",
)
@click.option("--board-id", default=None, help="Primary board id (clients are routed to it)")
@click.option("--host-user-id", default=None, help="Host platform user id, when already known")
def add_user(
    email: str,
    name: str,
    role: str,
    board_id: str | None,
    host_user_id: str | None,
) -> None:
    """Pre-provision a directory user so their first host sign-in resolves."""
    configure_logging()

    normalized = normalize_email(email)
    if normalized is None:
        click.echo("✗ Email cannot be empty", err=True)
        sys.exit(1)

    async def do_add():
        store = _get_store()
        try:
            user = await store.insert(
                email=normalized,
                name=name,
                role=Role(role),
                host_user_id=host_user_id,
                primary_board_id=board_id,
            )
        except DuplicateUserError:
            click.echo(f"✗ A user with email {normalized} or that host user id exists", err=True)
            sys.exit(1)
        except Exception as e:
            logger.error("Failed to add user", error=str(e))
            click.echo(f"✗ Error adding user: {e}", err=True)
            sys.exit(1)

        click.echo(f"✓ User created: {user.id}")
        click.echo(f"  Email: {user.email}")
        click.echo(f"  Role: {user.role.value}")
        if user.primary_board_id:
            click.echo(f"  Board: {user.primary_board_id}")

    asyncio.run(do_add())


@users.command("link-host")
@click.option("--email", required=True, help="Email address of the existing user")
@click.option(
    "--host-user-id",
    required=True,
    help="Host user id shown to the user when their sign-in was not found",
)
def link_host(email: str, host_user_id: str) -> None:
    """Attach a host user id to an existing directory user."""
    configure_logging()

    async def do_link():
        store = _get_store()
        try:
            user = await store.get_by_email(normalize_email(email) or "")
            if user is None:
                click.echo(f"✗ No user with email {email}", err=True)
                sys.exit(1)

            if user.host_user_id == host_user_id:
                click.echo(f"✓ User {user.email} is already linked to {host_user_id}")
                return
            if user.host_user_id is not None:
                click.echo(
                    f"✗ User {user.email} is linked to host user id {user.host_user_id}",
                    err=True,
                )
                sys.exit(1)

            await store.attach_host_user_id(user.id, host_user_id)
        except DuplicateUserError:
            click.echo(f"✗ Host user id {host_user_id} belongs to another user", err=True)
            sys.exit(1)
        except Exception as e:
            logger.error("Failed to link host user id", error=str(e))
            click.echo(f"✗ Error linking host user id: {e}", err=True)
            sys.exit(1)

        logger.info("Host user id linked", user_id=str(user.id), host_user_id=host_user_id)
        click.echo(f"✓ Linked {user.email} to host user id {host_user_id}")

    asyncio.run(do_link())


@users.command("list")
@click.option(
    "--role",
    default=None,
    type=click.Choice([r.value for r in Role]),
    help="Only list users with this role",
)
def list_users(role: str | None) -> None:
    """List directory users."""
    configure_logging()

    async def do_list():
        store = _get_store()
        try:
            found = await store.list_users(Role(role) if role else None)
        except Exception as e:
            logger.error("Failed to list users", error=str(e))
            click.echo(f"✗ Error listing users: {e}", err=True)
            sys.exit(1)

        if not found:
            click.echo("No users found.")
            return

        click.echo(f"Found {len(found)} user(s):")
        click.echo()
        for u in found:
            click.echo(f"  ID: {u.id}")
            click.echo(f"  Email: {u.email}")
            click.echo(f"  Name: {u.name}")
            click.echo(f"  Role: {u.role.value}{' (super admin)' if u.is_super_admin else ''}")
            click.echo(f"  Board: {u.primary_board_id or '-'}")
            click.echo(f"  Host user id: {u.host_user_id or '-'}")
            click.echo(f"  Linked: {'yes' if u.auth_user_id else 'no'}")
            click.echo()

    asyncio.run(do_list())


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    cli()
