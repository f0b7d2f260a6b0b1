"""
govsync/tests/test_tally.py

Tests for vote tally calculation and vote merging.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from govsync.errors import DuplicateVoterError, UnknownVariantError
from govsync.governance.models import AddressListVote, TokenVote, VoteChoice, VoteResult
from govsync.governance.tally import (
    OPTION_APPROVED,
    OPTION_NONE,
    has_voted,
    merge_approval,
    merge_vote,
    support_ratio,
    tally,
    tally_results,
    voter_breakdown,
)

from conftest import make_address_list_proposal, make_multisig_proposal, make_token_proposal

choices = st.sampled_from(list(VoteChoice))


class TestTally:
    """Test tally and displayed results."""

    def test_token_tally(self):
        proposal = make_token_proposal(yes=600, no=50, abstain=10)
        assert tally(proposal) == VoteResult(yes=600, no=50, abstain=10)

    def test_multisig_tally_counts_approvals(self):
        proposal = make_multisig_proposal(approvals=["0xa", "0xb"])
        assert tally(proposal) == VoteResult(yes=2)

    def test_unknown_variant_returned(self):
        result = tally({"result": {}})
        assert isinstance(result, UnknownVariantError)
        assert isinstance(tally_results({"result": {}}), UnknownVariantError)
        assert isinstance(voter_breakdown(object()), UnknownVariantError)

    def test_token_results_use_token_units(self):
        proposal = make_token_proposal(
            yes=600 * 10 ** 18, no=50 * 10 ** 18, total=1000 * 10 ** 18, decimals=18
        )
        results = tally_results(proposal)

        assert results.yes.value == "600"
        assert results.yes.percentage == Decimal("60.00")
        assert results.no.value == "50"
        assert results.no.percentage == Decimal("5.00")
        assert results.abstain.value == "0"

    def test_percentages_round_half_up(self):
        proposal = make_address_list_proposal(yes=1, no=2, total=3)
        results = tally_results(proposal)

        assert results.yes.percentage == Decimal("33.33")
        assert results.no.percentage == Decimal("66.67")

    def test_multisig_results_against_members(self):
        proposal = make_multisig_proposal(approvals=["0xa"])
        assert tally_results(proposal, members_count=4).yes.percentage == Decimal("25.00")
        assert tally_results(proposal).yes.percentage == Decimal("0.00")


class TestVoterBreakdown:
    """Test per-voter rows."""

    def test_connected_voter_first(self):
        votes = [
            TokenVote("0xaaa", VoteChoice.YES, 600),
            TokenVote("0xBBB", VoteChoice.NO, 50),
        ]
        proposal = make_token_proposal(yes=600, no=50, votes=votes)
        rows = voter_breakdown(proposal, connected_voter="0xbbb")

        assert rows[0].wallet == "0xBBB"
        assert rows[0].option == "no"
        assert rows[0].voting_power == "5%"
        assert rows[0].token_amount == "50 TKN"
        assert rows[1].wallet == "0xaaa"

    def test_multisig_members(self):
        proposal = make_multisig_proposal(approvals=["0xb"])
        rows = voter_breakdown(proposal, members=["0xa", "0xb"])

        assert {row.wallet: row.option for row in rows} == {
            "0xa": OPTION_NONE,
            "0xb": OPTION_APPROVED,
        }


class TestMergeVote:
    """Test merging not-yet-reflected votes."""

    def test_merge_token_vote(self):
        proposal = make_token_proposal(yes=100, total=1000)
        merged = merge_vote(proposal, TokenVote("0xnew", VoteChoice.NO, 200))

        assert merged.result == VoteResult(yes=100, no=200)
        assert merged.used_voting_weight == 300
        assert merged.votes[-1].voter_address == "0xnew"
        # original untouched
        assert proposal.result.no == 0
        assert proposal.votes == []

    def test_merge_address_list_vote(self):
        proposal = make_address_list_proposal(total=5)
        merged = merge_vote(proposal, AddressListVote("0xa", VoteChoice.ABSTAIN))

        assert merged.result.abstain == 1
        assert merged.used_voting_weight == 1

    def test_duplicate_without_replacement(self, majority_settings):
        proposal = make_token_proposal(
            yes=100, votes=[TokenVote("0xa", VoteChoice.YES, 100)]
        )
        with pytest.raises(DuplicateVoterError) as exc_info:
            merge_vote(proposal, TokenVote("0xA", VoteChoice.NO, 100), majority_settings)
        assert exc_info.value.voter_address == "0xA"

    def test_replacement_subtracts_prior(self, replacement_settings):
        proposal = make_token_proposal(
            yes=100, no=20, votes=[
                TokenVote("0xa", VoteChoice.YES, 100),
                TokenVote("0xb", VoteChoice.NO, 20),
            ]
        )
        merged = merge_vote(proposal, TokenVote("0xa", VoteChoice.NO, 100), replacement_settings)

        assert merged.result == VoteResult(yes=0, no=120)
        assert merged.used_voting_weight == 120
        assert len(merged.votes) == 2
        assert merged.votes[-1].vote_replaced is True

    def test_used_weight_cannot_exceed_total(self):
        proposal = make_token_proposal(yes=900, total=1000)
        with pytest.raises(ValueError):
            merge_vote(proposal, TokenVote("0xa", VoteChoice.YES, 200))

    def test_zero_snapshot_rejects_votes(self):
        proposal = make_token_proposal(total=0)
        with pytest.raises(ValueError):
            merge_vote(proposal, TokenVote("0xa", VoteChoice.YES, 500))

    def test_multisig_rejects_votes(self):
        with pytest.raises(TypeError):
            merge_vote(make_multisig_proposal(), AddressListVote("0xa", VoteChoice.YES))

    def test_token_requires_weight(self):
        with pytest.raises(TypeError):
            merge_vote(make_token_proposal(), AddressListVote("0xa", VoteChoice.YES))

    @given(st.lists(st.tuples(choices, st.integers(min_value=0, max_value=10 ** 24)), max_size=20))
    @settings(max_examples=100, deadline=None)
    def test_result_matches_vote_weights(self, entries):
        proposal = make_token_proposal(total=20 * 10 ** 24)
        for index, (choice, weight) in enumerate(entries):
            proposal = merge_vote(proposal, TokenVote(f"0x{index:040x}", choice, weight))

        assert proposal.result.total == sum(vote.weight for vote in proposal.votes)
        assert proposal.used_voting_weight == proposal.result.total


class TestMergeApproval:
    """Test multisig approvals."""

    def test_idempotent(self):
        proposal = make_multisig_proposal(approvals=["0xa"])
        assert merge_approval(proposal, "0xA") is proposal

        merged = merge_approval(proposal, "0xb")
        assert merged.approvals == ["0xa", "0xb"]
        assert has_voted(merged, "0xB")

    def test_rejects_non_multisig(self):
        with pytest.raises(TypeError):
            merge_approval(make_token_proposal(), "0xa")


class TestSupport:
    """Test support_ratio."""

    def test_no_votes(self):
        assert support_ratio(VoteResult()) == 0

    def test_abstain_ignored(self):
        assert support_ratio(VoteResult(yes=3, no=1, abstain=100)) == Decimal("0.75")
