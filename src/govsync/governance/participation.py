"""
govsync/governance/participation.py

Participation, quorum and early-execution evaluation.

Participation compares the voting weight already used against the minimum
share of the creation snapshot the plugin requires. Early execution is only
offered when the outcome is settled: quorum is reached and the proposal
would still pass if every absent voter turned up and voted No.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..errors import SettingsNotLoadedError, UnknownVariantError
from ..precision import HUNDRED, PRECISION_CONTEXT, ZERO, percentage, quantize, ratio, to_decimal
from .models import (
    AddressListProposal,
    MajorityVotingSettings,
    MultisigProposal,
    MultisigVotingSettings,
    ProposalVariant,
    TokenVotingProposal,
    VotingSettings,
)
from .tally import support_ratio

logger = logging.getLogger("govsync.governance.participation")


@dataclass
class Participation:
    """
    Participation summary.

    Weights are token base units for token voting, member counts for
    address lists and approval counts for multisig.
    """
    current_weight: int
    current_percent: Decimal
    min_weight: Decimal
    min_percent: Decimal
    missing_weight: Decimal               # Always >= 0
    total_weight: int

    @property
    def reached(self) -> bool:
        return self.missing_weight == 0

    def to_dict(self) -> dict:
        return {
            "current_weight": self.current_weight,
            "current_percent": str(self.current_percent),
            "min_weight": str(self.min_weight),
            "min_percent": str(self.min_percent),
            "missing_weight": str(self.missing_weight),
            "total_weight": self.total_weight,
        }


def _require_settings(settings: Optional[VotingSettings]) -> VotingSettings:
    if settings is None:
        raise SettingsNotLoadedError("Voting settings have not been loaded yet")
    return settings


def participation(
    proposal: ProposalVariant,
    settings: Optional[VotingSettings],
    members_count: Optional[int] = None,
) -> Participation:
    """
    Current vs. minimum participation.

    Args:
        proposal: Proposal to evaluate
        settings: Voting settings of the proposal's plugin
        members_count: Multisig member count, used for percentages only

    Raises:
        SettingsNotLoadedError: settings is None
        UnknownVariantError: proposal/settings kinds don't match
    """
    settings = _require_settings(settings)

    if isinstance(proposal, (TokenVotingProposal, AddressListProposal)):
        if not isinstance(settings, MajorityVotingSettings):
            raise UnknownVariantError("Majority-voting proposal needs majority-voting settings")
        total = proposal.total_voting_weight
        current = proposal.used_voting_weight
        min_weight = PRECISION_CONTEXT.multiply(to_decimal(total), settings.min_participation)
        min_percent = quantize(settings.min_participation * HUNDRED)
    elif isinstance(proposal, MultisigProposal):
        if not isinstance(settings, MultisigVotingSettings):
            raise UnknownVariantError("Multisig proposal needs multisig settings")
        total = members_count or 0
        current = len(proposal.approvals)
        min_weight = Decimal(settings.min_approvals)
        min_percent = percentage(settings.min_approvals, total)
    else:
        raise UnknownVariantError(f"Unsupported proposal type: {type(proposal).__name__}")

    missing = min_weight - to_decimal(current)
    return Participation(
        current_weight=current,
        current_percent=percentage(current, total),
        min_weight=min_weight,
        min_percent=min_percent,
        missing_weight=missing if missing > 0 else ZERO,
        total_weight=total,
    )


def is_early_executable(
    proposal: ProposalVariant,
    settings: Optional[VotingSettings],
    missing_weight: Optional[Decimal],
) -> bool:
    """
    Whether a token-voting proposal can be executed before its end date.

    All three must hold:
    1. quorum reached (missing_weight == 0)
    2. yes / (yes + no) > support threshold
    3. yes / (yes + no + absent) > support threshold, absent being the
       snapshot weight that has not voted

    Always False for other variants, other voting modes, or unknown inputs.
    """
    if missing_weight is None or settings is None:
        return False
    if not isinstance(proposal, TokenVotingProposal):
        return False
    if not isinstance(settings, MajorityVotingSettings) or not settings.early_execution:
        return False

    yes = proposal.result.yes
    no = proposal.result.no
    if yes + no == 0:
        return False

    absent = max(0, proposal.total_voting_weight - proposal.used_voting_weight)
    threshold = settings.support_threshold

    return (
        to_decimal(missing_weight) == 0
        and ratio(yes, yes + no) > threshold
        # even if every absent voter votes No, the outcome holds
        and ratio(yes, yes + no + absent) > threshold
    )


def thresholds_met(
    proposal: ProposalVariant,
    settings: Optional[VotingSettings],
    members_count: Optional[int] = None,
) -> bool:
    """
    Whether the proposal passes on its current tally.

    Majority voting: participation reached and support strictly above the
    threshold. Multisig: approvals >= minimum approvals.
    """
    settings = _require_settings(settings)
    summary = participation(proposal, settings, members_count)

    if isinstance(proposal, MultisigProposal):
        return summary.reached

    return summary.reached and support_ratio(proposal.result) > settings.support_threshold
