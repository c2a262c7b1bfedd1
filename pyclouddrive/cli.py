"""CLI interface for pyclouddrive."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import CloudDriveClient
from .auth import TokenManager, require_refresh_token
from .config import config
from .exceptions import (
    CloudDriveAPIError,
    CloudDriveConfigError,
    CloudDriveConflictError,
)
from .node_manager import NodeManager
from .output import OutputFormatter
from .sync import SyncEngine
from .utils import parse_extension_option, split_remote_path, validate_content_types

logger = logging.getLogger(__name__)


def build_client(refresh_token: Optional[str]) -> CloudDriveClient:
    """Create an API client from the configuration.

    Args:
        refresh_token: Refresh token given on the command line, if any

    Returns:
        Configured CloudDriveClient
    """
    token_manager = TokenManager(
        refresh_token=require_refresh_token(refresh_token),
        token_file=config.token_file,
        refresh_url=config.refresh_url,
    )
    return CloudDriveClient(
        token_manager=token_manager,
        metadata_url=config.metadata_url,
        content_url=config.content_url,
        endpoint_url=config.endpoint_url,
    )


@click.group()
@click.option(
    "--refresh-token",
    "-t",
    envvar="CLOUDDRIVE_REFRESH_TOKEN",
    help="Cloud drive refresh token",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyclouddrive")
@click.pass_context
def main(
    ctx: Any,
    refresh_token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pyclouddrive - Mirror local folders to a cloud drive."""
    ctx.ensure_object(dict)
    ctx.obj["refresh_token"] = refresh_token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyclouddrive").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--refresh-token",
    "-t",
    prompt="Enter your cloud drive refresh token",
    help="Cloud drive refresh token",
)
@click.pass_context
def init(ctx: Any, refresh_token: str) -> None:
    """Initialize the configuration.

    Validates the refresh token by exchanging it for an access token and
    stores it in the config file.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        out.info("Validating refresh token...")
        TokenManager(
            refresh_token=refresh_token,
            token_file=config.token_file,
            refresh_url=config.refresh_url,
        ).get_auth_header(force_refresh=True)
        out.success("Refresh token is valid")
    except CloudDriveAPIError as e:
        out.error(f"Refresh token validation failed: {e}")
        if not click.confirm("Save refresh token anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)

    try:
        config.save_refresh_token(refresh_token)
    except OSError as e:
        out.error(f"Could not write {config.config_file}: {e}")
        ctx.exit(1)
    out.success(f"Configuration saved to {config.config_file}")


@main.command()
@click.pass_context
def refresh(ctx: Any) -> None:
    """Exchange the refresh token for a new access token."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        client = build_client(ctx.obj["refresh_token"])
        client.token_manager.get_auth_header(force_refresh=True)
    except CloudDriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
        return
    out.success(
        f"Access token refreshed and saved to {client.token_manager.token_file}"
    )


@main.command()
@click.argument(
    "source", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.argument("remote_path", required=False, default=None)
@click.option(
    "--extension",
    "-e",
    "extensions",
    multiple=True,
    help="Tracked file type as .ext=mime/type (repeatable, replaces the "
    "configured table)",
)
@click.option(
    "--save-hashes/--no-save-hashes",
    default=None,
    help="Store computed MD5 fingerprints next to the files",
)
@click.pass_context
def sync(
    ctx: Any,
    source: Path,
    remote_path: Optional[str],
    extensions: tuple[str, ...],
    save_hashes: Optional[bool],
) -> None:
    """Upload new and changed files from SOURCE to the cloud drive.

    SOURCE: Local directory to mirror

    REMOTE_PATH: Remote folder (default: folder named like SOURCE in the
    drive root). Missing folders are created.

    Examples:
        pyclouddrive sync ~/Pictures /Backup/Pictures
        pyclouddrive sync ./photos -e .jpg=image/jpeg -e .png=image/png
        pyclouddrive sync ./photos --save-hashes
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        if extensions:
            content_types = validate_content_types(
                dict(parse_extension_option(value) for value in extensions)
            )
        else:
            content_types = config.extensions
        if save_hashes is None:
            save_hashes = config.save_hashes
        client = build_client(ctx.obj["refresh_token"])
    except CloudDriveConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if remote_path is None:
        remote_path = "/" + source.resolve().name

    engine = SyncEngine(
        client,
        out,
        content_types=content_types,
        save_hashes=save_hashes,
    )

    try:
        with client:
            stats = engine.sync(source, remote_path)
    except KeyboardInterrupt:
        out.warning("Sync cancelled by user")
        ctx.exit(130)
        return
    except CloudDriveConflictError as e:
        out.error(f"Conflict at {e.path}: {e}")
        out.error("Sync aborted. Resolve the conflict manually and run again.")
        ctx.exit(1)
        return
    except CloudDriveAPIError as e:
        out.error(f"API error: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(stats.to_dict())
    if stats.failed:
        ctx.exit(1)


@main.command()
@click.argument("remote_path", required=False, default="/")
@click.pass_context
def ls(ctx: Any, remote_path: str) -> None:
    """List the children of a remote folder."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        with build_client(ctx.obj["refresh_token"]) as client:
            manager = NodeManager(client)
            folder = manager.find_path(
                split_remote_path(remote_path), manager.get_root()
            )
            if folder is None:
                out.error(f"Remote folder not found: {remote_path}")
                ctx.exit(1)
                return
            children = manager.get_all_children(folder.id)
    except CloudDriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            [
                {
                    "id": node.id,
                    "name": node.name,
                    "kind": node.kind.value,
                    "md5": node.md5,
                    "size": node.size,
                }
                for node in children
            ]
        )
        return

    for node in children:
        marker = "/" if node.is_folder else ""
        out.print(f"{node.name}{marker}")
    if not children:
        out.info("(empty)")


if __name__ == "__main__":
    main()
