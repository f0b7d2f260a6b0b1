"""
govsync - Governance proposal tally and lifecycle reconciliation

Interprets proposals of three voting mechanisms (token voting, address list,
multisig) and keeps a local cache of not-yet-indexed proposals, votes and
executions in step with paginated results from the network.

Usage:
    from govsync import PendingCache, FileBackend, ProposalReconciler

    cache = PendingCache(FileBackend(config.storage_dir))
    reconciler = ProposalReconciler(cache)
    proposals = reconciler.reconcile(dao_address, fetched_page, skip=0)

Terminal Usage:
    from govsync import compute_terminal_view

    view = compute_terminal_view(proposal, settings, connected_voter=wallet)
    print(view.status, view.results.yes.percentage)

Feed Usage:
    feed = ProposalFeed(fetcher, reconciler)
    await feed.load_page(dao_address)
    await feed.load_more(dao_address)
"""

from .config import GovsyncConfig, DEFAULT_PAGE_SIZE
from .errors import (
    GovsyncError,
    MalformedIdError,
    MissingPluginAddressError,
    DuplicateVoterError,
    SettingsNotLoadedError,
    UnknownVariantError,
)
from .precision import BigInt
from .governance import (
    ProposalIdentifier,
    encode_proposal_id,
    decode_proposal_id,
    ProposalStatus,
    VoteChoice,
    VotingMode,
    TokenVotingProposal,
    AddressListProposal,
    MultisigProposal,
    MajorityVotingSettings,
    MultisigVotingSettings,
    parse_proposal,
    parse_settings,
)
from .storage import (
    StorageBackend,
    MemoryBackend,
    FileBackend,
    PendingCache,
    new_pending_proposal,
)
from .governance.reconcile import ProposalReconciler
from .governance.terminal import TerminalView, compute_terminal_view
from .feed import PageQuery, ProposalFeed

__version__ = "1.0.0"
__all__ = [
    # Config
    "GovsyncConfig",
    "DEFAULT_PAGE_SIZE",
    # Errors
    "GovsyncError",
    "MalformedIdError",
    "MissingPluginAddressError",
    "DuplicateVoterError",
    "SettingsNotLoadedError",
    "UnknownVariantError",
    # Precision
    "BigInt",
    # Governance
    "ProposalIdentifier",
    "encode_proposal_id",
    "decode_proposal_id",
    "ProposalStatus",
    "VoteChoice",
    "VotingMode",
    "TokenVotingProposal",
    "AddressListProposal",
    "MultisigProposal",
    "MajorityVotingSettings",
    "MultisigVotingSettings",
    "parse_proposal",
    "parse_settings",
    # Cache
    "StorageBackend",
    "MemoryBackend",
    "FileBackend",
    "PendingCache",
    "new_pending_proposal",
    "ProposalReconciler",
    # Terminal
    "TerminalView",
    "compute_terminal_view",
    # Feed
    "PageQuery",
    "ProposalFeed",
]
