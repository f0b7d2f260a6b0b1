"""
govsync/governance/reconcile.py

Optimistic cache reconciliation.

Proposals, votes and executions the user just submitted show up locally
before the network indexes them. Each time a page of proposals is fetched,
the reconciler:

1. Prunes every cached proposal the page already contains (first page only);
   cached votes and executions stay until they are removed explicitly
2. Merges cached votes/approvals not yet reflected into the remaining cached
   proposals and marks them executed when an execution is cached
3. Prepends them to the page and labels every proposal with its status

Usage:
    reconciler = ProposalReconciler(PendingCache(FileBackend(path)))
    proposals = reconciler.reconcile(dao_address, fetched_page, skip=0)
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from ..errors import GovsyncError
from ..storage import PendingCache
from .identifiers import canonical_proposal_id
from .lifecycle import derive_status
from .models import (
    AddressListVote,
    MultisigProposal,
    ProposalStatus,
    ProposalVariant,
    TokenVote,
    TokenVotingProposal,
    Vote,
    VotingSettings,
    parse_proposal,
    with_status,
)
from .tally import has_voted, merge_approval, merge_vote

logger = logging.getLogger("govsync.governance.reconcile")

# Failures isolated to one cached or fetched entry
ENTRY_ERRORS = (GovsyncError, AttributeError, KeyError, TypeError, ValueError)


def _canonical(proposal_id: str, plugin_address: Optional[str] = None) -> str:
    canonical = canonical_proposal_id(proposal_id, plugin_address)
    return canonical if isinstance(canonical, str) else proposal_id


def _cached_ids(proposal_id: str, record: Any) -> Set[str]:
    """
    Canonical ids a cached entry may be confirmed under: its cache key and its
    record id, with legacy ids completed by the record's plugin address.
    """
    if not isinstance(record, dict):
        return {_canonical(proposal_id)}
    plugin = record.get("plugin_address") or record.get("pluginAddress")
    plugin = plugin if isinstance(plugin, str) else None
    ids = {_canonical(proposal_id, plugin)}
    if isinstance(record.get("id"), str):
        ids.add(_canonical(record["id"], plugin))
    return ids


def _parse_cached_vote(proposal: ProposalVariant, record: dict) -> Union[Vote, str]:
    """Cached vote in the shape the proposal takes; multisig approvals are the approver address."""
    if isinstance(proposal, MultisigProposal):
        return record["voter_address"]
    if isinstance(proposal, TokenVotingProposal):
        return TokenVote.from_dict(record)
    return AddressListVote.from_dict(record)


class ProposalReconciler:
    """
    Reconciles the pending cache against authoritative proposal pages.

    The cache is the only state; reconcile() may be called any number of
    times with the same page and produces the same output and cache state.
    """

    def __init__(self, cache: PendingCache):
        self.cache = cache

    def reconcile(
        self,
        dao_address: str,
        fetched_page: Iterable[Any],
        skip: int = 0,
        now: Optional[datetime] = None,
        settings: Optional[Dict[str, VotingSettings]] = None,
    ) -> List[ProposalVariant]:
        """
        Combine a fetched page with the DAO's pending cache.

        Args:
            dao_address: DAO the page belongs to
            fetched_page: Raw proposal records (or parsed proposals), newest first
            skip: Offset of the page; cached proposals only join the first page
            now: Evaluation time for status labels
            settings: Voting settings by plugin address, for status labels

        Returns:
            Proposals with cached ones first, each labelled with its status
        """
        settings = settings or {}
        page = self._parse_page(fetched_page)

        if skip == 0:
            fetched_ids = {_canonical(p.proposal_id) for p in page}
            pending = self._prune(dao_address, fetched_ids)
        else:
            pending = []

        return [self._label(proposal, settings, now) for proposal in pending + page]

    # ------------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------------

    def _parse_page(self, fetched_page: Iterable[Any]) -> List[ProposalVariant]:
        page = []
        for record in fetched_page:
            try:
                page.append(parse_proposal(record))
            except ENTRY_ERRORS as e:
                logger.warning(f"Skipping unreadable fetched proposal: {e}")
        return page

    def _prune(
        self,
        dao_address: str,
        fetched_ids: Set[str],
    ) -> List[ProposalVariant]:
        """Drop confirmed cache entries and return the still-pending ones."""
        pending = []
        for proposal_id, record in self.cache.proposals_for(dao_address).items():
            if _cached_ids(proposal_id, record) & fetched_ids:
                self.cache.remove_proposal(dao_address, proposal_id)
                logger.info(f"Pending proposal {proposal_id} confirmed; removed from cache")
                continue

            try:
                proposal = self._augment(dao_address, proposal_id, record)
            except ENTRY_ERRORS as e:
                logger.warning(f"Dropping cached proposal {proposal_id}: {e}")
                continue
            pending.append(proposal)

        # most recently cached first
        pending.reverse()
        return pending

    def _augment(self, dao_address: str, proposal_id: str, record: dict) -> ProposalVariant:
        """Apply cached votes and execution to one cached proposal."""
        proposal = parse_proposal(record)

        for vote_record in self.cache.votes_for(dao_address, proposal_id):
            try:
                vote = _parse_cached_vote(proposal, vote_record)
            except ENTRY_ERRORS as e:
                logger.warning(f"Ignoring unreadable cached vote on {proposal_id}: {e}")
                continue

            if isinstance(proposal, MultisigProposal):
                proposal = merge_approval(proposal, vote)
                continue
            if has_voted(proposal, vote.voter_address):
                continue
            try:
                proposal = merge_vote(proposal, vote)
            except ENTRY_ERRORS as e:
                logger.warning(f"Ignoring cached vote of {vote.voter_address} on {proposal_id}: {e}")

        if self.cache.has_execution(dao_address, proposal_id):
            proposal = with_status(proposal, ProposalStatus.EXECUTED)
        return proposal

    def _label(
        self,
        proposal: ProposalVariant,
        settings: Dict[str, VotingSettings],
        now: Optional[datetime],
    ) -> ProposalVariant:
        try:
            status = derive_status(proposal, settings.get(proposal.plugin_address), now=now)
        except GovsyncError as e:
            logger.warning(f"Keeping reported status of {proposal.proposal_id}: {e}")
            return proposal
        return with_status(proposal, status)
