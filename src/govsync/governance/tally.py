"""
govsync/governance/tally.py

Vote tally calculation.

Totals are ints (token base units or member counts). Displayed values and
percentages are derived from the same ints through govsync.precision, so the
value column and the percentage column always agree to two decimal places.

Usage:
    result = tally(proposal)                  # VoteResult(yes, no, abstain)
    results = tally_results(proposal)         # display values + percentages
    proposal = merge_vote(proposal, vote, settings)
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Union

from ..errors import DuplicateVoterError, UnknownVariantError
from ..precision import ZERO, format_amount, format_percentage, format_units, percentage, ratio
from .models import (
    AddressListProposal,
    AddressListVote,
    MajorityVotingSettings,
    MultisigProposal,
    ProposalVariant,
    TokenVote,
    TokenVotingProposal,
    Vote,
    VoteChoice,
    VoteResult,
    VotingSettings,
)

logger = logging.getLogger("govsync.governance.tally")

OPTION_APPROVED = "approved"
OPTION_NONE = "none"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ChoiceResult:
    """Displayed value and percentage of total voting weight for one choice."""
    value: str
    percentage: Decimal

    def to_dict(self) -> dict:
        return {"value": self.value, "percentage": str(self.percentage)}


@dataclass
class TallyResults:
    """Displayed results of a vote."""
    yes: ChoiceResult
    no: ChoiceResult
    abstain: ChoiceResult

    def get(self, choice: VoteChoice) -> ChoiceResult:
        return getattr(self, choice.value)

    def to_dict(self) -> dict:
        return {
            "yes": self.yes.to_dict(),
            "no": self.no.to_dict(),
            "abstain": self.abstain.to_dict(),
        }


@dataclass
class VoterRow:
    """One line of the voter list."""
    wallet: str
    option: str                           # yes/no/abstain/approved/none
    voting_power: Optional[str] = None
    token_amount: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "wallet": self.wallet,
            "option": self.option,
            "voting_power": self.voting_power,
            "token_amount": self.token_amount,
        }


def _same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


# ============================================================================
# TALLY
# ============================================================================

def _unsupported(proposal: Any) -> UnknownVariantError:
    return UnknownVariantError(f"Unsupported proposal type: {type(proposal).__name__}")


def tally(proposal: ProposalVariant) -> Union[VoteResult, UnknownVariantError]:
    """
    Current yes/no/abstain totals.

    Multisig approvals count as yes votes. Anything that isn't a proposal
    variant yields an UnknownVariantError instance instead of raising.
    """
    if isinstance(proposal, (TokenVotingProposal, AddressListProposal)):
        return replace(proposal.result)
    if isinstance(proposal, MultisigProposal):
        return VoteResult(yes=len(proposal.approvals))
    return _unsupported(proposal)


def tally_results(
    proposal: ProposalVariant,
    members_count: Optional[int] = None,
) -> Union[TallyResults, UnknownVariantError]:
    """
    Display values and percentages of total voting weight.

    Args:
        proposal: Proposal to tally
        members_count: Multisig member count (multisig percentages are 0 without it)

    Returns:
        TallyResults, or the UnknownVariantError returned by tally()
    """
    result = tally(proposal)
    if isinstance(result, UnknownVariantError):
        return result

    if isinstance(proposal, TokenVotingProposal):
        decimals = proposal.token.decimals
        total = proposal.total_voting_weight

        def entry(amount: int) -> ChoiceResult:
            return ChoiceResult(
                value=format_amount(format_units(amount, decimals)),
                percentage=percentage(amount, total),
            )
    else:
        if isinstance(proposal, AddressListProposal):
            total = proposal.total_voting_weight
        else:
            total = members_count or 0

        def entry(amount: int) -> ChoiceResult:
            return ChoiceResult(value=str(amount), percentage=percentage(amount, total))

    return TallyResults(
        yes=entry(result.yes),
        no=entry(result.no),
        abstain=entry(result.abstain),
    )


def voter_breakdown(
    proposal: ProposalVariant,
    connected_voter: Optional[str] = None,
    members: Optional[Iterable[str]] = None,
) -> Union[List[VoterRow], UnknownVariantError]:
    """
    Per-voter rows, with the connected wallet (if it voted) listed first.
    Returns an UnknownVariantError instance for anything else.

    Args:
        proposal: Proposal to break down
        connected_voter: Address of the wallet viewing the proposal
        members: Multisig member addresses; non-approving members show as "none"
    """
    rows: List[VoterRow] = []

    if isinstance(proposal, TokenVotingProposal):
        token = proposal.token
        for vote in proposal.votes:
            amount = format_amount(format_units(vote.weight, token.decimals))
            rows.append(VoterRow(
                wallet=vote.voter_address,
                option=vote.choice.value,
                voting_power=format_percentage(percentage(vote.weight, proposal.total_voting_weight)),
                token_amount=f"{amount} {token.symbol}".strip(),
            ))
    elif isinstance(proposal, AddressListProposal):
        for vote in proposal.votes:
            rows.append(VoterRow(wallet=vote.voter_address, option=vote.choice.value, voting_power="1"))
    elif isinstance(proposal, MultisigProposal):
        by_wallet = {}
        for member in members or []:
            by_wallet[member.lower()] = VoterRow(wallet=member, option=OPTION_NONE)
        for address in proposal.approvals:
            by_wallet[address.lower()] = VoterRow(wallet=address, option=OPTION_APPROVED)
        rows = list(by_wallet.values())
    else:
        return _unsupported(proposal)

    if connected_voter:
        rows.sort(key=lambda row: 0 if _same_address(row.wallet, connected_voter) else 1)
    return rows


# ============================================================================
# MERGING NOT-YET-REFLECTED VOTES
# ============================================================================

def find_vote(proposal: ProposalVariant, voter_address: str) -> Optional[Vote]:
    if isinstance(proposal, MultisigProposal):
        return None
    for vote in proposal.votes:
        if _same_address(vote.voter_address, voter_address):
            return vote
    return None


def has_voted(proposal: ProposalVariant, voter_address: str) -> bool:
    """True if the address has a vote (or multisig approval) on the proposal."""
    if isinstance(proposal, MultisigProposal):
        return any(_same_address(a, voter_address) for a in proposal.approvals)
    return find_vote(proposal, voter_address) is not None


def merge_vote(
    proposal: ProposalVariant,
    vote: Vote,
    settings: Optional[VotingSettings] = None,
) -> ProposalVariant:
    """
    Return a copy of `proposal` with `vote` counted.

    The chosen total and the used voting weight grow by the vote's weight and
    the vote is appended. If the voter already voted, the prior vote is first
    taken back out when the plugin allows vote replacement.

    Raises:
        DuplicateVoterError: voter already voted and replacement is disabled
        TypeError: vote shape doesn't match the proposal, or proposal is multisig
        ValueError: vote would push used weight past the creation snapshot
    """
    if isinstance(proposal, MultisigProposal):
        raise TypeError("Multisig proposals take approvals; use merge_approval()")

    if isinstance(proposal, TokenVotingProposal):
        if not isinstance(vote, TokenVote):
            raise TypeError("Token voting proposals need a TokenVote with an explicit weight")
    elif isinstance(proposal, AddressListProposal):
        if not isinstance(vote, AddressListVote):
            vote = AddressListVote(voter_address=vote.voter_address, choice=vote.choice)
    else:
        raise _unsupported(proposal)

    result = proposal.result
    used = proposal.used_voting_weight
    votes = list(proposal.votes)

    prior = find_vote(proposal, vote.voter_address)
    if prior is not None:
        replacement = isinstance(settings, MajorityVotingSettings) and settings.vote_replacement
        if not replacement:
            raise DuplicateVoterError(proposal.proposal_id, vote.voter_address)
        result = result.add(prior.choice, -prior.weight)
        used -= prior.weight
        votes = [v for v in votes if v is not prior]
        vote = replace(vote, vote_replaced=True)
        logger.debug(f"Replacing vote of {vote.voter_address} on {proposal.proposal_id}")

    used += vote.weight
    if used > proposal.total_voting_weight:
        raise ValueError(
            f"Vote of {vote.voter_address} would use {used} of "
            f"{proposal.total_voting_weight} voting weight on {proposal.proposal_id}"
        )

    votes.append(vote)
    return replace(
        proposal,
        result=result.add(vote.choice, vote.weight),
        used_voting_weight=used,
        votes=votes,
    )


def merge_approval(proposal: MultisigProposal, address: str) -> MultisigProposal:
    """Append an approval unless the address already approved."""
    if not isinstance(proposal, MultisigProposal):
        raise TypeError("Only multisig proposals take approvals; use merge_vote()")
    if has_voted(proposal, address):
        return proposal
    return replace(proposal, approvals=[*proposal.approvals, address])


def support_ratio(result: VoteResult) -> Decimal:
    """yes / (yes + no); zero when nobody voted yes or no."""
    if result.yes + result.no == 0:
        return ZERO
    return ratio(result.yes, result.yes + result.no)
