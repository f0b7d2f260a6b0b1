"""
govsync/governance/

Proposal identifiers, records, tallies, participation and lifecycle.

The reconciler (govsync.governance.reconcile) and the terminal view
(govsync.governance.terminal) build on these and are imported from their
own modules.
"""

from .identifiers import (
    ProposalIdentifier,
    encode_proposal_id,
    decode_proposal_id,
    canonical_proposal_id,
    strip_plugin_address,
    pending_cache_key,
)
from .models import (
    VoteChoice,
    ProposalStatus,
    VotingMode,
    TokenDetails,
    VoteResult,
    TokenVote,
    AddressListVote,
    TokenVotingProposal,
    AddressListProposal,
    MultisigProposal,
    MajorityVotingSettings,
    MultisigVotingSettings,
    parse_proposal,
    parse_settings,
)
from .tally import (
    TallyResults,
    VoterRow,
    tally,
    tally_results,
    voter_breakdown,
    merge_vote,
    merge_approval,
)
from .participation import (
    Participation,
    participation,
    is_early_executable,
    thresholds_met,
)
from .lifecycle import (
    ExecutionStatus,
    Milestone,
    MilestoneMode,
    derive_status,
    execution_status,
    status_timeline,
    status_label,
    vote_button_label,
)

__all__ = [
    # Identifiers
    "ProposalIdentifier",
    "encode_proposal_id",
    "decode_proposal_id",
    "canonical_proposal_id",
    "strip_plugin_address",
    "pending_cache_key",
    # Records
    "VoteChoice",
    "ProposalStatus",
    "VotingMode",
    "TokenDetails",
    "VoteResult",
    "TokenVote",
    "AddressListVote",
    "TokenVotingProposal",
    "AddressListProposal",
    "MultisigProposal",
    "MajorityVotingSettings",
    "MultisigVotingSettings",
    "parse_proposal",
    "parse_settings",
    # Tally
    "TallyResults",
    "VoterRow",
    "tally",
    "tally_results",
    "voter_breakdown",
    "merge_vote",
    "merge_approval",
    # Participation
    "Participation",
    "participation",
    "is_early_executable",
    "thresholds_met",
    # Lifecycle
    "ExecutionStatus",
    "Milestone",
    "MilestoneMode",
    "derive_status",
    "execution_status",
    "status_timeline",
    "status_label",
    "vote_button_label",
]
