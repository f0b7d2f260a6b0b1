"""
govsync/governance/models.py

Proposal, vote and voting-settings records.

Three voting mechanisms are supported, each with its own proposal shape:
- TokenVotingProposal: votes weighted by token balance at the creation snapshot
- AddressListProposal: one member, one vote
- MultisigProposal: binary approvals from listed signers

ProposalVariant and VotingSettings are closed unions. Code that handles them
dispatches with isinstance() and ends in an UnknownVariantError branch.

Records round-trip through to_dict()/from_dict(). from_dict() also accepts the
camelCase keys written by the web dashboard ("totalVotingWeight", "vote": 2, ...).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..errors import GovsyncError, UnknownVariantError
from ..precision import BigInt, to_decimal
from ..serialization import format_iso_datetime, parse_iso_datetime
from .identifiers import ProposalIdentifier, decode_proposal_id


# ============================================================================
# ENUMS
# ============================================================================

class VoteChoice(Enum):
    """Vote options for token and address-list voting."""
    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"

    @classmethod
    def from_sdk(cls, value: int) -> "VoteChoice":
        """Map the network's numeric vote encoding (1 abstain, 2 yes, 3 no)."""
        try:
            return _SDK_CHOICES[int(value)]
        except (KeyError, ValueError, TypeError):
            raise ValueError(f"Invalid vote value: {value!r}") from None

    def to_sdk(self) -> int:
        return {v: k for k, v in _SDK_CHOICES.items()}[self]

    @classmethod
    def coerce(cls, value: Any) -> "VoteChoice":
        """Accept a VoteChoice, its string value, or the numeric encoding."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.from_sdk(value)
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized.isdigit():
                return cls.from_sdk(int(normalized))
            return cls(normalized)
        raise ValueError(f"Invalid vote choice: {value!r}")


_SDK_CHOICES = {
    1: VoteChoice.ABSTAIN,
    2: VoteChoice.YES,
    3: VoteChoice.NO,
}


class ProposalStatus(Enum):
    """Lifecycle status of a proposal."""
    PENDING = "Pending"            # Created, voting not started
    ACTIVE = "Active"              # Open for voting
    SUCCEEDED = "Succeeded"        # Passed, awaiting execution
    DEFEATED = "Defeated"          # Voting ended without passing
    EXECUTED = "Executed"          # Passed and executed

    @classmethod
    def coerce(cls, value: Any) -> "ProposalStatus":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for status in cls:
            if status.value.lower() == normalized:
                return status
        raise ValueError(f"Invalid proposal status: {value!r}")


class VotingMode(Enum):
    """
    Voting mode of a majority-voting plugin.

    Early execution and vote replacement are mutually exclusive.
    """
    STANDARD = "Standard"
    EARLY_EXECUTION = "EarlyExecution"
    VOTE_REPLACEMENT = "VoteReplacement"

    @classmethod
    def from_flags(cls, early_execution: bool = False, vote_replacement: bool = False) -> "VotingMode":
        if early_execution and vote_replacement:
            raise ValueError("earlyExecution and voteReplacement are mutually exclusive")
        if early_execution:
            return cls.EARLY_EXECUTION
        if vote_replacement:
            return cls.VOTE_REPLACEMENT
        return cls.STANDARD


# ============================================================================
# HELPERS
# ============================================================================

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _get(data: dict, name: str, default: Any = None) -> Any:
    """Read a snake_case key, falling back to its camelCase spelling."""
    if name in data:
        return data[name]
    return data.get(_camel(name), default)


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return parse_iso_datetime(str(value))


def _to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, str) and value.endswith("n"):
        value = value[:-1]
    return int(value)


def _date_or_none(value: Optional[datetime]) -> Optional[str]:
    return format_iso_datetime(value) if value else None


def _record(value: Any, what: str) -> dict:
    """A nested record, which must be a JSON object."""
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")
    return value


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class TokenDetails:
    """Governance token of a token-voting plugin."""
    address: str
    symbol: str
    decimals: int = 18
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenDetails":
        data = _record(data, "token")
        return cls(
            address=data.get("address", ""),
            symbol=data.get("symbol", ""),
            decimals=int(data.get("decimals") or 0),
            name=data.get("name", ""),
        )


@dataclass
class VoteResult:
    """Yes/no/abstain totals (base units for token voting, counts otherwise)."""
    yes: int = 0
    no: int = 0
    abstain: int = 0

    def get(self, choice: VoteChoice) -> int:
        return getattr(self, choice.value)

    def add(self, choice: VoteChoice, amount: int) -> "VoteResult":
        """Return a copy with `amount` added to `choice` (negative to remove)."""
        return replace(self, **{choice.value: self.get(choice) + amount})

    @property
    def total(self) -> int:
        return self.yes + self.no + self.abstain

    def to_dict(self, big: bool = False) -> dict:
        wrap = BigInt if big else int
        return {"yes": wrap(self.yes), "no": wrap(self.no), "abstain": wrap(self.abstain)}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "VoteResult":
        data = _record(data or {}, "result")
        return cls(
            yes=_to_int(data.get("yes")),
            no=_to_int(data.get("no")),
            abstain=_to_int(data.get("abstain")),
        )


@dataclass
class TokenVote:
    """A token-weighted vote."""
    voter_address: str
    choice: VoteChoice
    weight: int
    vote_replaced: bool = False

    def to_dict(self) -> dict:
        return {
            "voter_address": self.voter_address,
            "choice": self.choice.value,
            "weight": BigInt(self.weight),
            "vote_replaced": self.vote_replaced,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenVote":
        data = _record(data, "vote")
        return cls(
            voter_address=_get(data, "voter_address") or data["address"],
            choice=VoteChoice.coerce(data["choice"] if "choice" in data else data["vote"]),
            weight=_to_int(data.get("weight")),
            vote_replaced=bool(_get(data, "vote_replaced", False)),
        )


@dataclass
class AddressListVote:
    """A one-member-one-vote vote."""
    voter_address: str
    choice: VoteChoice
    vote_replaced: bool = False

    @property
    def weight(self) -> int:
        return 1

    def to_dict(self) -> dict:
        return {
            "voter_address": self.voter_address,
            "choice": self.choice.value,
            "vote_replaced": self.vote_replaced,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AddressListVote":
        data = _record(data, "vote")
        return cls(
            voter_address=_get(data, "voter_address") or data["address"],
            choice=VoteChoice.coerce(data["choice"] if "choice" in data else data["vote"]),
            vote_replaced=bool(_get(data, "vote_replaced", False)),
        )


Vote = Union[TokenVote, AddressListVote]


@dataclass
class ProposalBase:
    """Fields shared by every proposal variant."""
    id: ProposalIdentifier
    dao_address: str
    creator_address: str
    creation_date: datetime
    start_date: datetime
    end_date: datetime
    status: ProposalStatus = ProposalStatus.PENDING
    creation_block_number: int = 0
    execution_date: Optional[datetime] = None
    execution_block_number: Optional[int] = None
    execution_tx_hash: Optional[str] = None
    title: str = ""
    summary: str = ""

    @property
    def proposal_id(self) -> str:
        return self.id.encode()

    @property
    def plugin_address(self) -> str:
        return self.id.plugin_address

    def _base_dict(self) -> dict:
        return {
            "id": self.id.encode(),
            "dao_address": self.dao_address,
            "creator_address": self.creator_address,
            "creation_date": self.creation_date,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "status": self.status.value,
            "creation_block_number": self.creation_block_number,
            "execution_date": self.execution_date,
            "execution_block_number": self.execution_block_number,
            "execution_tx_hash": self.execution_tx_hash,
            "title": self.title,
            "summary": self.summary,
        }

    @staticmethod
    def _base_kwargs(data: dict) -> dict:
        plugin_address = _get(data, "plugin_address")
        decoded = decode_proposal_id(str(data["id"]), plugin_address)
        if isinstance(decoded, GovsyncError):
            raise decoded

        dao = data.get("dao")
        dao_address = _get(data, "dao_address") or (dao.get("address") if isinstance(dao, dict) else "")
        metadata = _record(data.get("metadata") or {}, "metadata")

        execution_block = _get(data, "execution_block_number")
        return {
            "id": decoded,
            "dao_address": dao_address or "",
            "creator_address": _get(data, "creator_address", ""),
            "creation_date": _to_datetime(_get(data, "creation_date")),
            "start_date": _to_datetime(_get(data, "start_date")),
            "end_date": _to_datetime(_get(data, "end_date")),
            "status": ProposalStatus.coerce(data.get("status", ProposalStatus.PENDING)),
            "creation_block_number": _to_int(_get(data, "creation_block_number")),
            "execution_date": _to_datetime(_get(data, "execution_date")),
            "execution_block_number": _to_int(execution_block) if execution_block is not None else None,
            "execution_tx_hash": _get(data, "execution_tx_hash"),
            "title": data.get("title") or metadata.get("title", ""),
            "summary": data.get("summary") or metadata.get("summary", ""),
        }


@dataclass
class TokenVotingProposal(ProposalBase):
    """Proposal on a token-voting plugin."""
    token: TokenDetails = field(default_factory=lambda: TokenDetails(address="", symbol=""))
    total_voting_weight: int = 0          # Snapshot at creation
    used_voting_weight: int = 0           # Never decreases, never exceeds total
    result: VoteResult = field(default_factory=VoteResult)
    votes: List[TokenVote] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "token": self.token.to_dict(),
            "total_voting_weight": BigInt(self.total_voting_weight),
            "used_voting_weight": BigInt(self.used_voting_weight),
            "result": self.result.to_dict(big=True),
            "votes": [v.to_dict() for v in self.votes],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenVotingProposal":
        return cls(
            **cls._base_kwargs(data),
            token=TokenDetails.from_dict(data["token"]),
            total_voting_weight=_to_int(_get(data, "total_voting_weight")),
            used_voting_weight=_to_int(_get(data, "used_voting_weight")),
            result=VoteResult.from_dict(data.get("result")),
            votes=[TokenVote.from_dict(v) for v in data.get("votes", [])],
        )


@dataclass
class AddressListProposal(ProposalBase):
    """Proposal on an address-list voting plugin."""
    total_voting_weight: int = 0          # Member count at creation
    used_voting_weight: int = 0           # Number of members who voted
    result: VoteResult = field(default_factory=VoteResult)
    votes: List[AddressListVote] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "total_voting_weight": self.total_voting_weight,
            "used_voting_weight": self.used_voting_weight,
            "result": self.result.to_dict(),
            "votes": [v.to_dict() for v in self.votes],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AddressListProposal":
        votes = [AddressListVote.from_dict(v) for v in data.get("votes", [])]
        used = _get(data, "used_voting_weight")
        return cls(
            **cls._base_kwargs(data),
            total_voting_weight=_to_int(_get(data, "total_voting_weight")),
            used_voting_weight=_to_int(used) if used is not None else len(votes),
            result=VoteResult.from_dict(data.get("result")),
            votes=votes,
        )


@dataclass
class MultisigProposal(ProposalBase):
    """Proposal on a multisig plugin."""
    approvals: List[str] = field(default_factory=list)   # In approval order

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "approvals": list(self.approvals),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MultisigProposal":
        return cls(
            **cls._base_kwargs(data),
            approvals=list(data.get("approvals", [])),
        )


ProposalVariant = Union[TokenVotingProposal, AddressListProposal, MultisigProposal]
PROPOSAL_VARIANTS = (TokenVotingProposal, AddressListProposal, MultisigProposal)


def parse_proposal(data: Any) -> ProposalVariant:
    """
    Build the matching proposal variant from a raw record.

    The variant is chosen by which fields are present:
    "token" -> token voting, "approvals" -> multisig,
    "result" without "token" -> address list.

    Raises:
        UnknownVariantError: record matches no supported shape
        GovsyncError / ValueError / KeyError: record has the shape but bad values
    """
    if isinstance(data, PROPOSAL_VARIANTS):
        return data
    if not isinstance(data, dict):
        raise UnknownVariantError(f"Proposal record must be a dict, got {type(data).__name__}")
    if "token" in data:
        return TokenVotingProposal.from_dict(data)
    if "approvals" in data:
        return MultisigProposal.from_dict(data)
    if "result" in data:
        return AddressListProposal.from_dict(data)
    raise UnknownVariantError(f"Unrecognized proposal record: {sorted(data.keys())}")


def with_status(proposal: ProposalVariant, status: ProposalStatus) -> ProposalVariant:
    """Copy of `proposal` with a different status."""
    if proposal.status == status:
        return proposal
    return replace(proposal, status=status)


# ============================================================================
# VOTING SETTINGS
# ============================================================================

@dataclass
class MajorityVotingSettings:
    """Settings of a token-voting or address-list plugin."""
    support_threshold: Decimal            # Fraction of yes/(yes+no) needed, 0-1
    min_participation: Decimal            # Fraction of total weight that must vote, 0-1
    min_duration: int = 0                 # Seconds
    voting_mode: VotingMode = VotingMode.STANDARD
    min_proposer_voting_power: int = 0

    def __post_init__(self):
        self.support_threshold = to_decimal(self.support_threshold)
        self.min_participation = to_decimal(self.min_participation)
        for name in ("support_threshold", "min_participation"):
            value = getattr(self, name)
            if not Decimal(0) <= value <= Decimal(1):
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    @property
    def early_execution(self) -> bool:
        return self.voting_mode == VotingMode.EARLY_EXECUTION

    @property
    def vote_replacement(self) -> bool:
        return self.voting_mode == VotingMode.VOTE_REPLACEMENT

    def to_dict(self) -> dict:
        return {
            "support_threshold": str(self.support_threshold),
            "min_participation": str(self.min_participation),
            "min_duration": self.min_duration,
            "voting_mode": self.voting_mode.value,
            "min_proposer_voting_power": BigInt(self.min_proposer_voting_power),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MajorityVotingSettings":
        mode = _get(data, "voting_mode")
        if mode is None:
            voting_mode = VotingMode.from_flags(
                early_execution=bool(_get(data, "early_execution", False)),
                vote_replacement=bool(_get(data, "vote_replacement", False)),
            )
        else:
            voting_mode = mode if isinstance(mode, VotingMode) else VotingMode(mode)
        return cls(
            support_threshold=_get(data, "support_threshold"),
            min_participation=_get(data, "min_participation"),
            min_duration=_to_int(_get(data, "min_duration")),
            voting_mode=voting_mode,
            min_proposer_voting_power=_to_int(_get(data, "min_proposer_voting_power")),
        )


@dataclass
class MultisigVotingSettings:
    """Settings of a multisig plugin."""
    min_approvals: int
    only_listed: bool = True

    def to_dict(self) -> dict:
        return {"min_approvals": self.min_approvals, "only_listed": self.only_listed}

    @classmethod
    def from_dict(cls, data: dict) -> "MultisigVotingSettings":
        return cls(
            min_approvals=_to_int(_get(data, "min_approvals")),
            only_listed=bool(_get(data, "only_listed", True)),
        )


VotingSettings = Union[MajorityVotingSettings, MultisigVotingSettings]


def parse_settings(data: Any) -> VotingSettings:
    """Build the matching settings variant from a raw record."""
    if isinstance(data, (MajorityVotingSettings, MultisigVotingSettings)):
        return data
    if not isinstance(data, dict):
        raise UnknownVariantError(f"Settings record must be a dict, got {type(data).__name__}")
    if _get(data, "min_approvals") is not None:
        return MultisigVotingSettings.from_dict(data)
    if _get(data, "support_threshold") is not None:
        return MajorityVotingSettings.from_dict(data)
    raise UnknownVariantError(f"Unrecognized settings record: {sorted(data.keys())}")


def proposal_to_dict(proposal: ProposalVariant) -> Dict[str, Any]:
    if not isinstance(proposal, PROPOSAL_VARIANTS):
        raise UnknownVariantError(f"Unsupported proposal type: {type(proposal).__name__}")
    return proposal.to_dict()
