"""
govsync/tests/conftest.py

Shared proposal builders.
"""

from datetime import datetime, timedelta, timezone

import pytest

from govsync.governance.identifiers import ProposalIdentifier
from govsync.governance.models import (
    AddressListProposal,
    MajorityVotingSettings,
    MultisigProposal,
    MultisigVotingSettings,
    ProposalStatus,
    TokenDetails,
    TokenVotingProposal,
    VoteResult,
    VotingMode,
)

DAO = "0xdao0000000000000000000000000000000000001"
PLUGIN = "0x4206cdbc1c7e1d76b9d8e63ad4d7e0b1a675cae3"
NOW = datetime(2023, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_token_proposal(local_id=1, yes=0, no=0, abstain=0, total=1000, used=None,
                        status=ProposalStatus.ACTIVE, votes=None, decimals=0, **kwargs):
    defaults = dict(
        id=ProposalIdentifier(PLUGIN, local_id),
        dao_address=DAO,
        creator_address="0xcreator",
        creation_date=NOW - timedelta(days=2),
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=1),
        status=status,
        creation_block_number=100,
    )
    defaults.update(kwargs)
    return TokenVotingProposal(
        **defaults,
        token=TokenDetails(address="0xtoken", symbol="TKN", decimals=decimals),
        total_voting_weight=total,
        used_voting_weight=yes + no + abstain if used is None else used,
        result=VoteResult(yes=yes, no=no, abstain=abstain),
        votes=list(votes or []),
    )


def make_address_list_proposal(local_id=1, yes=0, no=0, abstain=0, total=5,
                               status=ProposalStatus.ACTIVE, votes=None, **kwargs):
    defaults = dict(
        id=ProposalIdentifier(PLUGIN, local_id),
        dao_address=DAO,
        creator_address="0xcreator",
        creation_date=NOW - timedelta(days=2),
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=1),
        status=status,
    )
    defaults.update(kwargs)
    votes = list(votes or [])
    return AddressListProposal(
        **defaults,
        total_voting_weight=total,
        used_voting_weight=len(votes) if votes else yes + no + abstain,
        result=VoteResult(yes=yes, no=no, abstain=abstain),
        votes=votes,
    )


def make_multisig_proposal(local_id=1, approvals=None, status=ProposalStatus.ACTIVE, **kwargs):
    defaults = dict(
        id=ProposalIdentifier(PLUGIN, local_id),
        dao_address=DAO,
        creator_address="0xcreator",
        creation_date=NOW - timedelta(days=2),
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=1),
        status=status,
    )
    defaults.update(kwargs)
    return MultisigProposal(**defaults, approvals=list(approvals or []))


@pytest.fixture
def majority_settings():
    return MajorityVotingSettings(support_threshold="0.5", min_participation="0.2")


@pytest.fixture
def early_settings():
    return MajorityVotingSettings(
        support_threshold="0.5",
        min_participation="0.2",
        voting_mode=VotingMode.EARLY_EXECUTION,
    )


@pytest.fixture
def replacement_settings():
    return MajorityVotingSettings(
        support_threshold="0.5",
        min_participation="0.2",
        voting_mode=VotingMode.VOTE_REPLACEMENT,
    )


@pytest.fixture
def multisig_settings():
    return MultisigVotingSettings(min_approvals=2)
