"""Command line interface for Firebase Account."""

import asyncio
import json
import logging
import re
import secrets
import string
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .api_clients import (
    APIClientError,
    DEFAULT_AUTH_CONFIG,
    FirebaseAccount,
    FirebaseInstance,
)
from .api_clients.bootstrap import random_database_name
from .api_clients.network_error_handler import NetworkErrorHandler
from .config import (
    ADMIN_TOKEN_ENV,
    PASSWORD_ENV,
    USER_ENV,
    ConfigManager,
    Credentials,
    FirebaseConfig,
)

T = TypeVar("T")

console = Console()
error_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def run_async(coro: Awaitable[T]) -> T:
    """Run an async coroutine, with or without an event loop already running."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)  # type: ignore[arg-type]

    # A loop is already running (e.g. under a test harness), use a fresh
    # one on a worker thread
    result: List[Any] = []
    exception: List[BaseException] = []

    def run_in_new_loop():
        new_loop = asyncio.new_event_loop()
        try:
            result.append(new_loop.run_until_complete(coro))
        except BaseException as e:
            exception.append(e)
        finally:
            new_loop.close()

    thread = threading.Thread(target=run_in_new_loop)
    thread.start()
    thread.join()

    if exception:
        raise exception[0]
    return result[0]


def shell_escape(value: Any) -> str:
    """Backslash-escape everything but alphanumerics and dashes."""
    return re.sub(r"([^0-9a-zA-Z-])", r"\\\1", str(value))


def _random_password(length: int = 6) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


async def _open_account(ctx: click.Context) -> FirebaseAccount:
    credentials: Credentials = ctx.obj["credentials"]
    config: FirebaseConfig = ctx.obj["config"]

    if credentials.has_token:
        return FirebaseAccount.from_token(credentials.admin_token or "", config=config)
    if credentials.has_login:
        return await FirebaseAccount.from_credentials(
            credentials.email or "", credentials.password or "", config=config
        )
    raise click.UsageError(
        f"Supply --token (or {ADMIN_TOKEN_ENV}), or --email and --password "
        f"(or {USER_ENV} and {PASSWORD_ENV})"
    )


def _run_with_account(
    ctx: click.Context, action: Callable[[FirebaseAccount], Awaitable[T]]
) -> T:
    """Open the account, run ``action`` and map failures to exit code 1."""

    async def runner() -> T:
        account = await _open_account(ctx)
        async with account:
            return await action(account)

    try:
        return run_async(runner())
    except click.UsageError:
        raise
    except (APIClientError, OSError, ValueError) as e:
        error_console.print(f"❌ Error: {e}", style="red")
        guidance = NetworkErrorHandler.guidance_for(e)
        if guidance:
            error_console.print(guidance)
        if ctx.obj.get("verbose"):
            import traceback

            error_console.print(traceback.format_exc(), style="dim red")
        sys.exit(1)


def _run_with_instance(
    ctx: click.Context, name: str, action: Callable[[FirebaseInstance], Awaitable[T]]
) -> T:
    async def on_instance(account: FirebaseAccount) -> T:
        instance = await account.get_database(name)
        return await action(instance)

    return _run_with_account(ctx, on_instance)


def _read_json_file(filename: str) -> Dict[str, Any]:
    with open(filename, "r") as f:
        return json.load(f)


def _write_or_print_json(data: Any, filename: Optional[str], what: str) -> None:
    text = json.dumps(data, indent=2)
    if filename:
        Path(filename).write_text(text)
        console.print(f"✅ Wrote {what} to {filename} successfully.", style="green")
    else:
        click.echo(text)


@click.group()
@click.option(
    "--token",
    envvar=ADMIN_TOKEN_ENV,
    help=f"Admin token for the account (env: {ADMIN_TOKEN_ENV})",
)
@click.option("--email", envvar=USER_ENV, help=f"Account email (env: {USER_ENV})")
@click.option(
    "--password", envvar=PASSWORD_ENV, help=f"Account password (env: {PASSWORD_ENV})"
)
@click.option(
    "--config", "-c", type=click.Path(exists=False), help="Config file path"
)
@click.option("--timeout", type=float, help="Request timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="fbadmin")
@click.pass_context
def cli(
    ctx,
    token: Optional[str],
    email: Optional[str],
    password: Optional[str],
    config: Optional[str],
    timeout: Optional[float],
    verbose: bool,
):
    """Administer Firebase databases from the command line.

    \b
    CREDENTIALS:
      Either an admin token, or the account email and password.

    \b
    EXAMPLES:
      fbadmin --token $TOKEN create my-new-db
      fbadmin rules get my-db rules.json
      fbadmin user list my-db
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    config_manager = ConfigManager(Path(config) if config else None)
    try:
        firebase_config = config_manager.load()
    except ValueError as e:
        raise click.UsageError(str(e))
    if timeout is not None:
        firebase_config = firebase_config.model_copy(update={"timeout": timeout})

    ctx.obj["config"] = firebase_config
    ctx.obj["credentials"] = Credentials(
        admin_token=token, email=email, password=password
    )


# Account commands


@cli.command("bootstrap")
@click.pass_context
def bootstrap_command(ctx):
    """Create a database with a random name and print its settings.

    Prints FB_NAME, FIREBASE_URL and FIREBASE_AUTH_SECRET as shell
    assignments, ready for eval.
    """

    async def action(account: FirebaseAccount) -> None:
        name = random_database_name()
        instance = await account.create_database(name)
        await instance.ready()
        tokens = await instance.get_auth_tokens()

        click.echo(f"FB_NAME={shell_escape(name)}")
        click.echo(
            f"FIREBASE_URL={shell_escape(name)}.{ctx.obj['config'].database_domain}"
        )
        if tokens:
            click.echo(f"FIREBASE_AUTH_SECRET={shell_escape(tokens[0])}")

    _run_with_account(ctx, action)


@cli.command("create")
@click.argument("name")
@click.pass_context
def create_command(ctx, name: str):
    """Create a new database called NAME."""

    async def action(account: FirebaseAccount) -> None:
        with console.status(f"Creating database {name}..."):
            instance = await account.create_database(name)
            await instance.ready()
        console.print(f"✅ Created {instance}", style="green")

    _run_with_account(ctx, action)


@cli.command("delete")
@click.argument("name")
@click.pass_context
def delete_command(ctx, name: str):
    """Delete the database called NAME."""

    async def action(account: FirebaseAccount) -> None:
        with console.status(f"Deleting database {name}..."):
            instance = await account.get_database(name)
            await account.delete_database(instance)
        console.print(f"✅ Deleted {name}", style="green")

    _run_with_account(ctx, action)


# Instance commands


@cli.group("rules")
def rules_group():
    """Read and write security rules."""
    pass


@rules_group.command("get")
@click.argument("name")
@click.argument("filename", required=False)
@click.pass_context
def rules_get(ctx, name: str, filename: Optional[str]):
    """Print the rules of NAME, or write them to FILENAME."""

    async def action(instance: FirebaseInstance) -> None:
        rules = await instance.get_rules()
        _write_or_print_json(rules, filename, "security rules")

    _run_with_instance(ctx, name, action)


@rules_group.command("set")
@click.argument("name")
@click.argument("filename", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def rules_set(ctx, name: str, filename: str):
    """Replace the rules of NAME with the JSON in FILENAME."""

    async def action(instance: FirebaseInstance) -> None:
        await instance.set_rules(_read_json_file(filename))
        console.print(
            f"✅ Sent security rules from {filename} successfully.", style="green"
        )

    _run_with_instance(ctx, name, action)


@cli.group("auth-config")
def auth_config_group():
    """Read and write auth provider configuration."""
    pass


@auth_config_group.command("get")
@click.argument("name")
@click.argument("filename", required=False)
@click.pass_context
def auth_config_get(ctx, name: str, filename: Optional[str]):
    """Print the auth config of NAME, or write it to FILENAME.

    A database whose config was never set shows the service defaults.
    """

    async def action(instance: FirebaseInstance) -> None:
        auth_config = await instance.get_auth_config()
        if auth_config is None:
            auth_config = DEFAULT_AUTH_CONFIG
        _write_or_print_json(auth_config, filename, "auth config")

    _run_with_instance(ctx, name, action)


@auth_config_group.command("set")
@click.argument("name")
@click.argument("filename", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def auth_config_set(ctx, name: str, filename: str):
    """Replace the auth config of NAME with the JSON in FILENAME."""

    async def action(instance: FirebaseInstance) -> None:
        await instance.set_auth_config(_read_json_file(filename))
        console.print(f"✅ Sent auth config from {filename} successfully.", style="green")

    _run_with_instance(ctx, name, action)


@cli.group("token")
def token_group():
    """Manage auth secrets."""
    pass


@token_group.command("list")
@click.argument("name")
@click.pass_context
def token_list(ctx, name: str):
    """List the auth secrets of NAME."""

    async def action(instance: FirebaseInstance) -> None:
        for token in await instance.get_auth_tokens():
            click.echo(token)

    _run_with_instance(ctx, name, action)


@token_group.command("add")
@click.argument("name")
@click.pass_context
def token_add(ctx, name: str):
    """Create a new auth secret for NAME."""

    async def action(instance: FirebaseInstance) -> None:
        token = await instance.add_auth_token()
        click.echo(f"FIREBASE_AUTH_SECRET={shell_escape(token)}")

    _run_with_instance(ctx, name, action)


@token_group.command("remove")
@click.argument("name")
@click.argument("token")
@click.pass_context
def token_remove(ctx, name: str, token: str):
    """Revoke TOKEN on NAME."""

    async def action(instance: FirebaseInstance) -> None:
        await instance.remove_auth_token(token)
        console.print(f"✅ Removed token {token} successfully.", style="green")

    _run_with_instance(ctx, name, action)


@cli.group("user")
def user_group():
    """Manage Simple Login email/password users."""
    pass


def _format_created(value: Any) -> str:
    if value is None:
        return "unknown"
    try:
        created = datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return str(value)
    return created.strftime("%Y-%m-%d %H:%M:%S UTC")


def _user_sort_key(user: Dict[str, Any]) -> Any:
    user_id = user.get("id")
    try:
        return (0, int(user_id))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return (1, str(user_id))


@user_group.command("list")
@click.argument("name")
@click.pass_context
def user_list(ctx, name: str):
    """List the users of NAME."""

    async def action(instance: FirebaseInstance) -> None:
        users = await instance.list_users()

        if not users:
            console.print("ℹ️ No users found", style="yellow")
            return

        table = Table(title=f"Users of {name}")
        table.add_column("User ID", style="cyan")
        table.add_column("Email address", style="green")
        table.add_column("Date added", style="dim")

        for user in sorted(users, key=_user_sort_key):
            table.add_row(
                f"simplelogin:{user.get('id')}",
                str(user.get("email", "")),
                _format_created(user.get("time_created")),
            )
        console.print(table)

    _run_with_instance(ctx, name, action)


@user_group.command("add")
@click.argument("name")
@click.argument("email")
@click.argument("password", required=False)
@click.pass_context
def user_add(ctx, name: str, email: str, password: Optional[str]):
    """Create user EMAIL on NAME, generating a password if none is given."""
    generated = password is None
    user_password = password or _random_password()

    async def action(instance: FirebaseInstance) -> None:
        user = await instance.create_user(email, user_password)
        click.echo(f"SIMPLELOGIN_UID={shell_escape(user.get('uid', ''))}")
        click.echo(f"SIMPLELOGIN_EMAIL={shell_escape(user.get('email', email))}")
        click.echo(f"SIMPLELOGIN_AUTH_TOKEN={shell_escape(user.get('token', ''))}")
        if generated:
            click.echo(f"SIMPLELOGIN_PASS={shell_escape(user_password)}")

    _run_with_instance(ctx, name, action)


@user_group.command("remove")
@click.argument("name")
@click.argument("email")
@click.pass_context
def user_remove(ctx, name: str, email: str):
    """Remove user EMAIL from NAME."""

    async def action(instance: FirebaseInstance) -> None:
        await instance.remove_user(email)
        console.print(f"✅ Removed user {email}", style="green")

    _run_with_instance(ctx, name, action)


@user_group.command("reset")
@click.argument("name")
@click.argument("email")
@click.pass_context
def user_reset(ctx, name: str, email: str):
    """Email a password reset link to user EMAIL of NAME."""

    async def action(instance: FirebaseInstance) -> None:
        await instance.send_reset_email(email)
        console.print(f"✅ Sent password reset email to {email}", style="green")

    _run_with_instance(ctx, name, action)


@user_group.command("passwd")
@click.argument("name")
@click.argument("email")
@click.argument("new_password")
@click.pass_context
def user_passwd(ctx, name: str, email: str, new_password: str):
    """Set a new password for user EMAIL of NAME."""

    async def action(instance: FirebaseInstance) -> None:
        await instance.change_user_password(email, new_password)
        console.print(f"✅ Changed password for {email}", style="green")

    _run_with_instance(ctx, name, action)


def main():
    """Entry point for the fbadmin console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
