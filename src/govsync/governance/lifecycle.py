"""
govsync/governance/lifecycle.py

Proposal lifecycle status engine.

States and transitions:

    PENDING -> ACTIVE                 now >= start_date
    ACTIVE  -> SUCCEEDED              now >= end_date and thresholds met,
                                      or early-executable before end_date
    ACTIVE  -> DEFEATED               now >= end_date and thresholds not met
    SUCCEEDED -> EXECUTED             execution observed

A failed execution does not change state: the proposal stays SUCCEEDED
(still executable) and only its displayed execution status and timeline
show the failure.

Multisig proposals use approvals >= min_approvals in place of support and
quorum; DEFEATED is displayed as "Expired" for them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from ..config import PROPOSAL_DATE_FORMAT
from ..errors import UnknownVariantError
from .models import (
    AddressListProposal,
    MultisigProposal,
    ProposalStatus,
    ProposalVariant,
    TokenVotingProposal,
    VotingSettings,
)
from .participation import is_early_executable, participation, thresholds_met

logger = logging.getLogger("govsync.governance.lifecycle")


TRANSITIONS: Dict[ProposalStatus, FrozenSet[ProposalStatus]] = {
    ProposalStatus.PENDING: frozenset({ProposalStatus.ACTIVE}),
    ProposalStatus.ACTIVE: frozenset({ProposalStatus.SUCCEEDED, ProposalStatus.DEFEATED}),
    ProposalStatus.SUCCEEDED: frozenset({ProposalStatus.EXECUTED}),
    ProposalStatus.DEFEATED: frozenset(),
    ProposalStatus.EXECUTED: frozenset(),
}

# Display labels
LABEL_PUBLISHED = "Published"
LABEL_PASSED = "Passed"
LABEL_PENDING = "Pending"
LABEL_ACTIVE = "Active"
LABEL_SUCCEEDED = "Succeeded"
LABEL_DEFEATED = "Defeated"
LABEL_EXECUTED = "Executed"
LABEL_FAILED = "Failed"
LABEL_EXPIRED = "Expired"

BUTTON_VOTE_NOW = "Vote now"
BUTTON_CHANGE_VOTE = "Change vote"
BUTTON_VOTE_SUBMITTED = "Vote submitted"
BUTTON_VOTING_OVER = "Voting over"
BUTTON_APPROVE = "Approve"
BUTTON_APPROVED = "Approved"
BUTTON_CONCLUDED = "Concluded"


class ExecutionStatus(Enum):
    """What the execution widget shows."""
    DEFAULT = "default"
    EXECUTABLE = "executable"
    EXECUTABLE_FAILED = "executable-failed"
    EXECUTED = "executed"
    DEFEATED = "defeated"


class MilestoneMode(Enum):
    DONE = "done"
    ACTIVE = "active"
    UPCOMING = "upcoming"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass
class Milestone:
    """One step of the status timeline."""
    label: str
    mode: MilestoneMode
    date: Optional[str] = None
    block: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "mode": self.mode.value,
            "date": self.date,
            "block": self.block,
        }


def can_transition(current: ProposalStatus, new: ProposalStatus) -> bool:
    return new in TRANSITIONS[current]


def resolve_now(now: Optional[datetime]) -> datetime:
    """`now` as an aware datetime; naive values are taken as UTC."""
    if now is None:
        return datetime.now(timezone.utc)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


# ============================================================================
# STATUS
# ============================================================================

def derive_status(
    proposal: ProposalVariant,
    settings: Optional[VotingSettings],
    now: Optional[datetime] = None,
    executed: bool = False,
    members_count: Optional[int] = None,
) -> ProposalStatus:
    """
    Current lifecycle status from timestamps, tally and execution outcome.

    Args:
        proposal: Proposal to label
        settings: Plugin voting settings; when None, a proposal whose voting
            window has closed keeps the status its record reports
        now: Evaluation time (defaults to the current UTC time)
        executed: An execution was observed outside the record (pending cache)
        members_count: Multisig member count

    Returns:
        ProposalStatus
    """
    if not isinstance(proposal, (TokenVotingProposal, AddressListProposal, MultisigProposal)):
        raise UnknownVariantError(f"Unsupported proposal type: {type(proposal).__name__}")

    if executed or proposal.execution_date is not None or proposal.status == ProposalStatus.EXECUTED:
        return ProposalStatus.EXECUTED

    now = resolve_now(now)
    if proposal.start_date is None or proposal.end_date is None:
        return proposal.status

    if now < proposal.start_date:
        return ProposalStatus.PENDING

    if settings is None:
        if now < proposal.end_date:
            return ProposalStatus.ACTIVE
        return proposal.status

    if now < proposal.end_date:
        if isinstance(proposal, MultisigProposal):
            # reaching min approvals makes a multisig proposal executable right away
            if thresholds_met(proposal, settings, members_count):
                return ProposalStatus.SUCCEEDED
            return ProposalStatus.ACTIVE
        summary = participation(proposal, settings)
        if is_early_executable(proposal, settings, summary.missing_weight):
            return ProposalStatus.SUCCEEDED
        return ProposalStatus.ACTIVE

    if thresholds_met(proposal, settings, members_count):
        return ProposalStatus.SUCCEEDED
    return ProposalStatus.DEFEATED


def execution_status(
    status: Optional[ProposalStatus],
    can_execute_early: bool = False,
    execution_failed: bool = False,
) -> ExecutionStatus:
    """Execution widget state for a proposal status."""
    if status == ProposalStatus.SUCCEEDED:
        return ExecutionStatus.EXECUTABLE_FAILED if execution_failed else ExecutionStatus.EXECUTABLE
    if status == ProposalStatus.EXECUTED:
        return ExecutionStatus.EXECUTED
    if status == ProposalStatus.DEFEATED:
        return ExecutionStatus.DEFEATED
    if status == ProposalStatus.ACTIVE and can_execute_early:
        return ExecutionStatus.EXECUTABLE
    return ExecutionStatus.DEFAULT


# ============================================================================
# TIMELINE
# ============================================================================

def format_utc_offset(value: datetime) -> str:
    """Offset label such as "UTC+2" or "UTC-5:30"."""
    offset = value.utcoffset() or timedelta(0)
    total_minutes = int(offset.total_seconds() // 60)
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    if minutes:
        return f"UTC{sign}{hours}:{minutes:02d}"
    return f"UTC{sign}{hours}"


def format_display_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """Timeline date, e.g. "2023/01/31 02:00 PM  UTC+0"."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(tz or timezone.utc)
    return f"{local.strftime(PROPOSAL_DATE_FORMAT)}  {format_utc_offset(local)}"


def _block(number: Optional[int]) -> Optional[str]:
    return str(number) if number else None


def status_timeline(
    proposal: ProposalVariant,
    status: ProposalStatus,
    execution_failed: bool = False,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> List[Milestone]:
    """
    Ordered milestones: Published -> [Passed] -> current step.

    A failed execution ends the timeline with a Failed milestone where the
    upcoming Succeeded step would otherwise be.
    """
    def date(value: Optional[datetime]) -> Optional[str]:
        return format_display_date(value, tz) if value else None

    published = Milestone(
        label=LABEL_PUBLISHED,
        mode=MilestoneMode.DONE,
        date=date(proposal.creation_date),
        block=_block(proposal.creation_block_number),
    )
    passed = [
        published,
        Milestone(label=LABEL_PASSED, mode=MilestoneMode.DONE, date=date(proposal.start_date)),
    ]

    if status == ProposalStatus.ACTIVE:
        return [published, Milestone(LABEL_ACTIVE, MilestoneMode.ACTIVE, date(proposal.start_date))]

    if status == ProposalStatus.DEFEATED:
        label = LABEL_EXPIRED if isinstance(proposal, MultisigProposal) else LABEL_DEFEATED
        return [published, Milestone(label, MilestoneMode.FAILED, date(proposal.end_date))]

    if status == ProposalStatus.SUCCEEDED:
        if execution_failed:
            return passed + [Milestone(LABEL_FAILED, MilestoneMode.FAILED, date(resolve_now(now)))]
        return passed + [Milestone(LABEL_SUCCEEDED, MilestoneMode.UPCOMING)]

    if status == ProposalStatus.EXECUTED:
        if proposal.execution_date is not None:
            return passed + [Milestone(
                LABEL_EXECUTED,
                MilestoneMode.SUCCEEDED,
                date(proposal.execution_date),
                _block(proposal.execution_block_number),
            )]
        return passed + [Milestone(LABEL_FAILED, MilestoneMode.FAILED)]

    return [published, Milestone(LABEL_PENDING, MilestoneMode.UPCOMING, date(proposal.start_date))]


# ============================================================================
# LABELS
# ============================================================================

def format_distance(delta: timedelta) -> str:
    """Rough human distance ("3 days", "about 2 hours")."""
    seconds = abs(int(delta.total_seconds()))
    if seconds < 45:
        return "less than a minute"
    minutes = round(seconds / 60)
    if minutes < 45:
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    hours = round(seconds / 3600)
    if hours < 24:
        return "about 1 hour" if hours == 1 else f"about {hours} hours"
    days = round(seconds / 86400)
    if days < 30:
        return "1 day" if days == 1 else f"{days} days"
    months = round(days / 30)
    if months < 12:
        return "about 1 month" if months == 1 else f"{months} months"
    years = round(days / 365)
    return "about 1 year" if years == 1 else f"about {years} years"


def status_label(
    proposal: ProposalVariant,
    status: ProposalStatus,
    now: Optional[datetime] = None,
) -> str:
    """Short status line of the voting terminal."""
    now = resolve_now(now)
    if status == ProposalStatus.PENDING:
        return f"Starts in {format_distance((proposal.start_date or now) - now)}"
    if status == ProposalStatus.ACTIVE:
        return f"Ends in {format_distance((proposal.end_date or now) - now)}"
    if status == ProposalStatus.SUCCEEDED:
        return LABEL_SUCCEEDED
    if status == ProposalStatus.EXECUTED:
        return LABEL_EXECUTED
    if isinstance(proposal, MultisigProposal):
        return LABEL_EXPIRED
    return LABEL_DEFEATED


def vote_button_label(
    proposal: ProposalVariant,
    status: ProposalStatus,
    can_vote: bool,
    voted: bool,
) -> str:
    """
    Label of the vote/approve button.

    Args:
        proposal: Proposal being viewed
        status: Its derived status
        can_vote: The viewer may (re)vote right now
        voted: The viewer already voted or approved
    """
    open_for_votes = status == ProposalStatus.PENDING or (
        status == ProposalStatus.ACTIVE and not voted
    )

    if isinstance(proposal, MultisigProposal):
        if open_for_votes:
            return BUTTON_APPROVE
        return BUTTON_APPROVED if voted else BUTTON_CONCLUDED

    if open_for_votes:
        return BUTTON_VOTE_NOW
    if voted:
        return BUTTON_CHANGE_VOTE if can_vote else BUTTON_VOTE_SUBMITTED
    return BUTTON_VOTING_OVER
