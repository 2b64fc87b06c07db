"""Command-line interface for google-workspace-server."""

import asyncio
import logging
import sys

import click

from workspace_server.__version__ import __version__
from workspace_server.auth.errors import AuthError
from workspace_server.auth.models import AuthState


def _build_manager(client_id: str | None = None, client_secret: str | None = None):
    """Create a credential manager from the environment plus CLI overrides."""
    from workspace_server.auth import CredentialLifecycleManager
    from workspace_server.config import AuthConfig

    try:
        config = AuthConfig.from_env()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    updates = {"client_id": client_id, "client_secret": client_secret}
    updates = {key: value for key, value in updates.items() if value}
    if updates:
        config = config.model_copy(update=updates)
    return CredentialLifecycleManager(config=config)


async def _refresh_and_close(manager) -> None:
    try:
        await manager.refresh_token()
    finally:
        await manager.close()


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging (written to stderr)")
def main(debug: bool) -> None:
    """Google Workspace MCP Server - connect agents to Google Workspace.

    Credentials for one Google account are stored locally and refreshed
    automatically. Use the 'auth' commands to inspect or reset them.
    """
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--client-id", envvar="GOOGLE_OAUTH_CLIENT_ID", help="Google OAuth client ID")
@click.option(
    "--client-secret", envvar="GOOGLE_OAUTH_CLIENT_SECRET", help="Google OAuth client secret"
)
def setup(client_id: str | None, client_secret: str | None) -> None:
    """Set up Google Workspace OAuth authentication.

    This will:
    1. Open browser for OAuth2 consent flow
    2. Store credentials at ~/.google-workspace-server/credentials.json

    Requires:
    - GOOGLE_OAUTH_CLIENT_ID environment variable or --client-id option
    - GOOGLE_OAUTH_CLIENT_SECRET environment variable or --client-secret option
    """
    if not client_id or not client_secret:
        click.echo("❌ Error: OAuth client credentials required")
        click.echo("")
        click.echo("Set environment variables:")
        click.echo("  export GOOGLE_OAUTH_CLIENT_ID='your-client-id'")
        click.echo("  export GOOGLE_OAUTH_CLIENT_SECRET='your-client-secret'")
        click.echo("")
        click.echo("Or pass as options:")
        click.echo("  workspace-server setup --client-id=... --client-secret=...")
        sys.exit(1)

    manager = _build_manager(client_id, client_secret)

    if manager.get_state() == AuthState.VALID:
        click.echo("✓ Already authenticated!")
        click.echo(f"Credentials stored at: {manager.credentials_path}")
        click.echo("")

        if not click.confirm("Re-authenticate?"):
            return

    click.echo("Starting OAuth authentication flow...")
    click.echo("Browser will open for Google consent...")
    click.echo("")

    try:
        asyncio.run(manager.authorize())
    except AuthError as e:
        click.echo(f"❌ Authentication failed: {e.user_message}")
        sys.exit(1)

    click.echo("✓ Authentication successful!")
    click.echo(f"Credentials stored at: {manager.credentials_path}")
    click.echo("")
    click.echo("Run 'workspace-server auth status' to verify setup.")


@main.command()
def mcp() -> None:
    """Start the MCP server on stdio.

    Signs in first if no credentials are stored (a browser window opens).
    This command is typically invoked by the agent host via the MCP protocol.
    """
    from workspace_server.server import main as server_main

    try:
        click.echo("Starting Google Workspace MCP server...", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except AuthError as e:
        click.echo(f"❌ {e.user_message}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.group()
def auth() -> None:
    """Inspect and manage stored credentials."""


@auth.command("clear")
def auth_clear() -> None:
    """Clear all authentication credentials."""
    manager = _build_manager()
    if manager.clear_auth():
        click.echo("✅ Authentication credentials cleared successfully.")
    else:
        click.echo("ℹ️  No credentials found to clear.")


@auth.command("expire")
def auth_expire() -> None:
    """Force the access token to expire (for testing refresh)."""
    manager = _build_manager()
    if not manager.expire_access_token():
        click.echo("ℹ️  No credentials found to expire.")
        return
    click.echo("✅ Access token expired successfully.")
    click.echo("   Next API call will trigger proactive refresh.")


@auth.command("refresh")
def auth_refresh() -> None:
    """Refresh the access token now."""
    manager = _build_manager()
    try:
        asyncio.run(_refresh_and_close(manager))
    except AuthError as e:
        click.echo(f"❌ Token refresh failed: {e.user_message}")
        sys.exit(1)

    status = manager.get_status()
    click.echo("✅ Access token refreshed.")
    if status.expiry_date:
        click.echo(f"   Expiry: {status.expiry_date.isoformat()}")


@auth.command("status")
def auth_status() -> None:
    """Show current authentication status."""
    manager = _build_manager()
    status = manager.get_status()

    if status.storage_error:
        click.echo(f"❌ Credentials file is unreadable: {status.storage_error}")
        click.echo("   Run 'workspace-server setup' to sign in again.")
        sys.exit(1)

    if status.state == AuthState.UNAUTHENTICATED:
        click.echo("ℹ️  No credentials found.")
        return

    click.echo("📊 Auth Status:")
    click.echo(f"   Access Token: {'✅ Present' if status.has_access_token else '❌ Missing'}")
    click.echo(f"   Refresh Token: {'✅ Present' if status.has_refresh_token else '❌ Missing'}")
    if status.expiry_date:
        click.echo(f"   Expiry: {status.expiry_date.isoformat()}")
    if status.state == AuthState.EXPIRED:
        click.echo("   Status: ❌ EXPIRED")
    else:
        click.echo("   Status: ✅ Valid")
        click.echo(f"   Time left: ~{(status.seconds_remaining or 0) // 60} minutes")
    click.echo(f"   Scopes: {len(status.scopes)} granted")


@main.command()
def doctor() -> None:
    """Check installation and authentication status.

    Verifies:
    1. Python dependencies installed
    2. OAuth credentials configured
    3. Token validity
    """
    click.echo("Google Workspace MCP Status:")
    click.echo("")

    click.echo("Dependencies:")
    try:
        import google.auth  # noqa: F401
        import google_auth_oauthlib  # noqa: F401
        import mcp  # noqa: F401

        click.echo("  ✓ google-auth installed")
        click.echo("  ✓ google-auth-oauthlib installed")
        click.echo("  ✓ mcp installed")
    except ImportError as e:
        click.echo(f"  ❌ Missing dependency: {e}")
        sys.exit(1)

    click.echo("")

    manager = _build_manager()
    status = manager.get_status()

    click.echo("Configuration:")
    if manager.config.has_client_credentials:
        click.echo("  ✓ OAuth client ID and secret configured")
    else:
        click.echo("  ⚠️  GOOGLE_OAUTH_CLIENT_ID / GOOGLE_OAUTH_CLIENT_SECRET not set")
    click.echo("")

    click.echo("Authentication:")
    click.echo(f"  Credentials file: {manager.credentials_path}")

    if status.storage_error:
        click.echo("  ❌ Credentials file corrupted")
        click.echo("")
        click.echo("Run 'workspace-server setup' to re-authenticate.")
        sys.exit(1)
    elif status.state == AuthState.UNAUTHENTICATED:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'workspace-server setup' to authenticate.")
        sys.exit(1)
    elif status.state == AuthState.EXPIRED:
        click.echo("  ⚠️  Token expired (will refresh automatically on use)")
    else:
        click.echo("  ✓ Authenticated")
        if status.expiry_date:
            click.echo(
                f"  Token expires: {status.expiry_date.strftime('%Y-%m-%d %H:%M:%S UTC')}"
            )
        click.echo(f"  Scopes: {len(status.scopes)} configured")

    click.echo("")
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
