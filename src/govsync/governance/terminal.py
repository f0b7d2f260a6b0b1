"""
govsync/governance/terminal.py

Everything the voting terminal of a single proposal shows, computed in one
place: tally, voter list, participation, status, timeline and button labels.

Usage:
    view = compute_terminal_view(proposal, settings, connected_voter=wallet)
    if view.loading:
        ...  # settings not fetched yet
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional

from ..errors import SettingsNotLoadedError
from .lifecycle import (
    ExecutionStatus,
    Milestone,
    derive_status,
    execution_status,
    resolve_now,
    status_label,
    status_timeline,
    vote_button_label,
)
from .models import (
    MajorityVotingSettings,
    MultisigProposal,
    ProposalStatus,
    ProposalVariant,
    VotingSettings,
    parse_proposal,
    parse_settings,
)
from .participation import Participation, is_early_executable, participation
from .tally import TallyResults, VoterRow, has_voted, tally_results, voter_breakdown

logger = logging.getLogger("govsync.governance.terminal")


@dataclass
class TerminalView:
    """Voting terminal state; only `loading` is meaningful while settings are missing."""
    loading: bool = False
    status: Optional[ProposalStatus] = None
    results: Optional[TallyResults] = None
    voters: List[VoterRow] = field(default_factory=list)
    participation: Optional[Participation] = None
    can_execute_early: bool = False
    execution_status: ExecutionStatus = ExecutionStatus.DEFAULT
    timeline: List[Milestone] = field(default_factory=list)
    status_label: str = ""
    vote_button_label: str = ""
    voted: bool = False
    can_vote: bool = False

    def to_dict(self) -> dict:
        return {
            "loading": self.loading,
            "status": self.status.value if self.status else None,
            "results": self.results.to_dict() if self.results else None,
            "voters": [row.to_dict() for row in self.voters],
            "participation": self.participation.to_dict() if self.participation else None,
            "can_execute_early": self.can_execute_early,
            "execution_status": self.execution_status.value,
            "timeline": [m.to_dict() for m in self.timeline],
            "status_label": self.status_label,
            "vote_button_label": self.vote_button_label,
            "voted": self.voted,
            "can_vote": self.can_vote,
        }


def compute_terminal_view(
    proposal: ProposalVariant,
    settings: Optional[VotingSettings],
    now: Optional[datetime] = None,
    members: Optional[Iterable[str]] = None,
    connected_voter: Optional[str] = None,
    can_vote: Optional[bool] = None,
    executed: bool = False,
    execution_failed: bool = False,
    tz: Optional[tzinfo] = None,
) -> TerminalView:
    """
    Build the terminal view of one proposal.

    Args:
        proposal: Proposal (or raw record) being viewed
        settings: Voting settings of its plugin (or raw record); None while loading
        now: Evaluation time
        members: Multisig member addresses
        connected_voter: Wallet viewing the proposal
        can_vote: Whether the wallet is eligible; defaults to "voting is open
            and the wallet hasn't voted, or may replace its vote"
        executed: An execution is known outside the record (pending cache)
        execution_failed: The last execution attempt failed
        tz: Time zone for timeline dates (UTC by default)

    Returns:
        TerminalView, with loading=True when settings are not loaded
    """
    proposal = parse_proposal(proposal)
    if settings is not None:
        settings = parse_settings(settings)

    members = list(members) if members is not None else None
    members_count = len(members) if members is not None else None

    try:
        summary = participation(proposal, settings, members_count)
    except SettingsNotLoadedError:
        logger.debug(f"Settings for {proposal.plugin_address} not loaded yet")
        return TerminalView(loading=True)

    status = derive_status(proposal, settings, now=now, executed=executed, members_count=members_count)
    now = resolve_now(now)
    before_end = proposal.end_date is not None and now < proposal.end_date
    early = (
        before_end
        and status != ProposalStatus.EXECUTED
        and is_early_executable(proposal, settings, summary.missing_weight)
    )

    voted = bool(connected_voter) and has_voted(proposal, connected_voter)
    if can_vote is None:
        replaceable = (
            isinstance(settings, MajorityVotingSettings)
            and settings.vote_replacement
            and not isinstance(proposal, MultisigProposal)
        )
        can_vote = bool(connected_voter) and status == ProposalStatus.ACTIVE and (
            not voted or replaceable
        )

    return TerminalView(
        loading=False,
        status=status,
        results=tally_results(proposal, members_count),
        voters=voter_breakdown(proposal, connected_voter, members),
        participation=summary,
        can_execute_early=early,
        execution_status=execution_status(status, early, execution_failed),
        timeline=status_timeline(proposal, status, execution_failed, now=now, tz=tz),
        status_label=status_label(proposal, status, now=now),
        vote_button_label=vote_button_label(proposal, status, can_vote, voted),
        voted=voted,
        can_vote=can_vote,
    )
