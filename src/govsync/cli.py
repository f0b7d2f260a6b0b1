"""
govsync/cli.py

Command-line entry point.

Run with: govsync --help

Examples:
    govsync decode-id 0xplugin_0x1f
    govsync decode-id 0x1f --plugin 0xplugin
    govsync encode-id 0xplugin 31
    govsync reconcile 0xdao page.json --storage-dir ./cache
    govsync terminal proposal.json settings.json
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
import trio

from . import serialization
from .config import GovsyncConfig
from .errors import GovsyncError
from .governance.identifiers import decode_proposal_id, encode_proposal_id
from .governance.models import parse_settings
from .governance.reconcile import ProposalReconciler
from .governance.terminal import compute_terminal_view
from .storage import FileBackend, PendingCache

logger = logging.getLogger("govsync.cli")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return serialization.parse_iso_datetime(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 timestamp: {value}") from None


async def _read_json(path: str):
    text = await trio.Path(path).read_text(encoding="utf-8")
    return serialization.loads(text)


def _echo_json(value) -> None:
    click.echo(serialization.dumps(value, indent=2))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, verbose):
    """Governance proposal tally and cache reconciliation tools."""
    config = GovsyncConfig.from_env()
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    ctx.obj = config


@main.command("decode-id")
@click.argument("raw")
@click.option("--plugin", "plugin_address", default=None, help="Plugin address for legacy ids")
def decode_id(raw, plugin_address):
    """Split a proposal id into plugin address and local id."""
    decoded = decode_proposal_id(raw, plugin_address)
    if isinstance(decoded, GovsyncError):
        raise click.ClickException(str(decoded))
    _echo_json({
        "plugin_address": decoded.plugin_address,
        "local_id": decoded.local_id,
        "id": decoded.encode(),
    })


@main.command("encode-id")
@click.argument("plugin_address")
@click.argument("local_id", type=int)
def encode_id(plugin_address, local_id):
    """Build a proposal id from plugin address and local id."""
    try:
        click.echo(encode_proposal_id(plugin_address, local_id))
    except (TypeError, ValueError) as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("dao_address")
@click.argument("page_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--skip", default=0, show_default=True, help="Offset of the page")
@click.option("--storage-dir", type=click.Path(file_okay=False), default=None,
              help="Pending cache directory (defaults to GOVSYNC_STORAGE_DIR)")
@click.option("--now", default=None, help="Evaluation time (ISO-8601)")
@click.pass_obj
def reconcile(config, dao_address, page_json, skip, storage_dir, now):
    """Merge the pending cache into a fetched page of proposals."""
    now = _parse_now(now)
    storage = Path(storage_dir) if storage_dir else config.storage_dir
    cache = PendingCache(FileBackend(storage), persist=config.persist_cache)
    reconciler = ProposalReconciler(cache)

    async def run():
        page = await _read_json(page_json)
        if not isinstance(page, list):
            raise click.ClickException(f"{page_json} must contain a JSON list of proposals")
        return reconciler.reconcile(dao_address, page, skip=skip, now=now)

    proposals = trio.run(run)
    logger.debug(f"Reconciled {len(proposals)} proposals for {dao_address}")
    _echo_json([p.to_dict() for p in proposals])


@main.command()
@click.argument("proposal_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("settings_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--voter", default=None, help="Connected wallet address")
@click.option("--member", "members", multiple=True, help="Multisig member (repeatable)")
@click.option("--now", default=None, help="Evaluation time (ISO-8601)")
def terminal(proposal_json, settings_json, voter, members, now):
    """Show the voting terminal of one proposal."""
    now = _parse_now(now)

    async def run():
        return await _read_json(proposal_json), await _read_json(settings_json)

    proposal, settings = trio.run(run)
    try:
        view = compute_terminal_view(
            proposal,
            parse_settings(settings) if settings is not None else None,
            now=now,
            members=members or None,
            connected_voter=voter,
        )
    except (GovsyncError, KeyError, ValueError) as e:
        raise click.ClickException(str(e))
    _echo_json(view.to_dict())


if __name__ == "__main__":
    main()
