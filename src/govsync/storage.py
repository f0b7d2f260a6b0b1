"""
govsync/storage.py

Durable storage for the optimistic pending cache.

Two layers:
1. StorageBackend - key/value text store (memory or local disk)
2. PendingCache - per-DAO pending proposals, votes and executions kept in
   memory and written through to the backend as whole objects on every change

Stored values use the govsync.serialization codec, so caches written by the
web dashboard (BigInt "123n" strings, ISO dates) load unchanged.

Usage:
    cache = PendingCache(FileBackend(Path("~/.govsync/cache").expanduser()))
    cache.add_proposal(dao_address, proposal)
    cache.add_vote(dao_address, proposal.proposal_id, vote)
"""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from . import serialization
from .config import (
    DEFAULT_STORAGE_DIR,
    PENDING_EXECUTION_KEY,
    PENDING_PROPOSALS_KEY,
    PENDING_VOTES_KEY,
)
from .governance.identifiers import ProposalIdentifier, encode_proposal_id, pending_cache_key
from .governance.models import (
    AddressListProposal,
    MajorityVotingSettings,
    MultisigProposal,
    ProposalStatus,
    ProposalVariant,
    TokenDetails,
    TokenVotingProposal,
    Vote,
)

logger = logging.getLogger("govsync.storage")


# ============================================================================
# STORAGE BACKENDS
# ============================================================================

class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get a value by key."""
        pass

    @abstractmethod
    def put(self, key: str, value: str) -> bool:
        """Store a value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a value."""
        pass

    @abstractmethod
    def list_keys(self, prefix: str = "") -> List[str]:
        """List keys with optional prefix filter."""
        pass


class MemoryBackend(StorageBackend):
    """In-memory storage backend."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        if key in self._data:
            del self._data[key]
            return True
        return False

    def list_keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]


class FileBackend(StorageBackend):
    """Local file storage backend."""

    def __init__(self, storage_dir: Path = None):
        self.storage_dir = Path(storage_dir or DEFAULT_STORAGE_DIR)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._index_file = self.storage_dir / "metadata.json"
        self._keys: Set[str] = self._load_index()

    def _load_index(self) -> Set[str]:
        """Load the stored key names from disk."""
        if self._index_file.exists():
            try:
                with open(self._index_file, "r") as f:
                    return set(json.load(f))
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Failed to load key index: {e}")
        return set()

    def _save_index(self) -> None:
        try:
            with open(self._index_file, "w") as f:
                json.dump(sorted(self._keys), f)
        except OSError as e:
            logger.error(f"Failed to save key index: {e}")

    def _key_to_path(self, key: str) -> Path:
        # hashed so cache keys never need escaping on disk
        hash_name = hashlib.sha256(key.encode()).hexdigest()[:32]
        return self.storage_dir / f"{hash_name}.json"

    def get(self, key: str) -> Optional[str]:
        if key not in self._keys:
            return None
        try:
            return self._key_to_path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Failed to read {key}: {e}")
            return None

    def put(self, key: str, value: str) -> bool:
        try:
            self._key_to_path(key).write_text(value, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write {key}: {e}")
            return False
        if key not in self._keys:
            self._keys.add(key)
            self._save_index()
        return True

    def delete(self, key: str) -> bool:
        if key not in self._keys:
            return False
        try:
            self._key_to_path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete {key}: {e}")
            return False
        self._keys.discard(key)
        self._save_index()
        return True

    def list_keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._keys if key.startswith(prefix)]


# ============================================================================
# PENDING CACHE
# ============================================================================

class PendingCache:
    """
    Optimistic cache of proposals, votes and executions not yet confirmed
    by the network.

    Layout (each is one stored object):
        pendingProposals: {daoAddress: {proposalId: proposal}}
        pendingVotes:     {"daoAddress_proposalId": {voterAddress: vote}}
        pendingExecution: {"daoAddress_proposalId": {"tx_hash": .., "executed_at": ..}}

    Entries are kept as plain dicts so one unreadable entry can be skipped
    without losing the rest. When `persist` is False, changes stay in memory.
    """

    def __init__(self, backend: Optional[StorageBackend] = None, persist: bool = True):
        self._backend = backend if backend is not None else MemoryBackend()
        self.persist = persist
        self._proposals: Optional[Dict[str, Dict[str, dict]]] = None
        self._votes: Optional[Dict[str, Dict[str, dict]]] = None
        self._executions: Optional[Dict[str, dict]] = None

    # ------------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------------

    def _load(self, key: str) -> Dict[str, Any]:
        text = self._backend.get(key)
        if not text:
            return {}
        try:
            data = serialization.loads(text)
        except ValueError as e:
            logger.warning(f"Discarding unreadable {key} cache: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Discarding {key} cache: expected an object, got {type(data).__name__}")
            return {}
        return data

    def _save(self, key: str, value: Dict[str, Any]) -> None:
        if not self.persist:
            return
        if not self._backend.put(key, serialization.dumps(value)):
            logger.error(f"Failed to persist {key} cache")

    @property
    def proposals(self) -> Dict[str, Dict[str, dict]]:
        if self._proposals is None:
            self._proposals = self._load(PENDING_PROPOSALS_KEY)
        return self._proposals

    @property
    def votes(self) -> Dict[str, Dict[str, dict]]:
        if self._votes is None:
            self._votes = self._load(PENDING_VOTES_KEY)
        return self._votes

    @property
    def executions(self) -> Dict[str, dict]:
        if self._executions is None:
            self._executions = self._load(PENDING_EXECUTION_KEY)
        return self._executions

    def reload(self) -> None:
        """Drop in-memory state; the next access reads the backend again."""
        self._proposals = None
        self._votes = None
        self._executions = None

    # ------------------------------------------------------------------------
    # proposals
    # ------------------------------------------------------------------------

    def proposals_for(self, dao_address: str) -> Dict[str, dict]:
        """Pending proposals of a DAO, keyed by proposal id (a copy)."""
        entries = self.proposals.get(dao_address)
        return dict(entries) if isinstance(entries, dict) else {}

    def add_proposal(self, dao_address: str, proposal: Union[ProposalVariant, dict]) -> str:
        """Cache a just-submitted proposal. Returns its id."""
        record = proposal.to_dict() if hasattr(proposal, "to_dict") else dict(proposal)
        proposal_id = str(record["id"])
        dao_cache = {**self.proposals_for(dao_address), proposal_id: record}
        self._proposals = {**self.proposals, dao_address: dao_cache}
        self._save(PENDING_PROPOSALS_KEY, self._proposals)
        logger.debug(f"Cached pending proposal {proposal_id} for {dao_address}")
        return proposal_id

    def remove_proposal(self, dao_address: str, proposal_id: str) -> bool:
        """Remove a pending proposal. False if it wasn't cached."""
        dao_cache = self.proposals_for(dao_address)
        if proposal_id not in dao_cache:
            return False
        del dao_cache[proposal_id]
        self._proposals = {**self.proposals, dao_address: dao_cache}
        self._save(PENDING_PROPOSALS_KEY, self._proposals)
        return True

    # ------------------------------------------------------------------------
    # votes and approvals
    # ------------------------------------------------------------------------

    def votes_for(self, dao_address: str, proposal_id: str) -> List[dict]:
        """Pending votes/approvals on one proposal, in the order they were cached."""
        entries = self.votes.get(pending_cache_key(dao_address, proposal_id))
        return list(entries.values()) if isinstance(entries, dict) else []

    def _put_vote(self, dao_address: str, proposal_id: str, voter_address: str, record: dict) -> None:
        key = pending_cache_key(dao_address, proposal_id)
        existing = self.votes.get(key)
        entries = dict(existing) if isinstance(existing, dict) else {}
        # a newer vote from the same voter replaces the older one
        entries.pop(voter_address.lower(), None)
        entries[voter_address.lower()] = record
        self._votes = {**self.votes, key: entries}
        self._save(PENDING_VOTES_KEY, self._votes)

    def add_vote(self, dao_address: str, proposal_id: str, vote: Vote) -> None:
        """Cache a vote submitted on a token or address-list proposal."""
        self._put_vote(dao_address, proposal_id, vote.voter_address, vote.to_dict())
        logger.debug(f"Cached pending vote of {vote.voter_address} on {proposal_id}")

    def add_approval(self, dao_address: str, proposal_id: str, approver_address: str) -> None:
        """Cache a multisig approval."""
        record = {"voter_address": approver_address, "approved": True}
        self._put_vote(dao_address, proposal_id, approver_address, record)
        logger.debug(f"Cached pending approval of {approver_address} on {proposal_id}")

    def remove_votes(self, dao_address: str, proposal_id: str) -> bool:
        key = pending_cache_key(dao_address, proposal_id)
        if key not in self.votes:
            return False
        self._votes = {k: v for k, v in self.votes.items() if k != key}
        self._save(PENDING_VOTES_KEY, self._votes)
        return True

    # ------------------------------------------------------------------------
    # executions
    # ------------------------------------------------------------------------

    def add_execution(
        self,
        dao_address: str,
        proposal_id: str,
        tx_hash: Optional[str] = None,
        executed_at: Optional[datetime] = None,
    ) -> None:
        """Cache an execution transaction that hasn't been indexed yet."""
        key = pending_cache_key(dao_address, proposal_id)
        record = {
            "tx_hash": tx_hash,
            "executed_at": executed_at or datetime.now(timezone.utc),
        }
        self._executions = {**self.executions, key: record}
        self._save(PENDING_EXECUTION_KEY, self._executions)

    def has_execution(self, dao_address: str, proposal_id: str) -> bool:
        return pending_cache_key(dao_address, proposal_id) in self.executions

    def remove_execution(self, dao_address: str, proposal_id: str) -> bool:
        key = pending_cache_key(dao_address, proposal_id)
        if key not in self.executions:
            return False
        self._executions = {k: v for k, v in self.executions.items() if k != key}
        self._save(PENDING_EXECUTION_KEY, self._executions)
        return True

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return {
            "daos": len(self.proposals),
            "pending_proposals": sum(
                len(v) for v in self.proposals.values() if isinstance(v, dict)
            ),
            "pending_votes": sum(
                len(v) for v in self.votes.values() if isinstance(v, dict)
            ),
            "pending_executions": len(self.executions),
            "persist": self.persist,
        }


# ============================================================================
# PENDING PROPOSAL BUILDER
# ============================================================================

def new_pending_proposal(
    dao_address: str,
    plugin_address: str,
    local_id: int,
    creator_address: str,
    start_date: datetime,
    end_date: datetime,
    total_voting_weight: Optional[int] = None,
    token: Optional[TokenDetails] = None,
    multisig: bool = False,
    title: str = "",
    summary: str = "",
    settings: Optional[MajorityVotingSettings] = None,
    creation_date: Optional[datetime] = None,
) -> ProposalVariant:
    """
    Build the optimistic record of a proposal whose creation transaction was
    just submitted: status PENDING, empty tally.

    Args:
        total_voting_weight: Snapshot weight (token supply or member count);
            required unless multisig
        token: Governance token; makes it a token-voting proposal
        multisig: Build a multisig proposal (ignored when token is given)
        settings: When given, end_date must respect its minimum duration
    """
    weighted = token is not None or not multisig
    if weighted and (total_voting_weight is None or total_voting_weight <= 0):
        raise ValueError(
            f"Pending proposal needs a positive total_voting_weight snapshot, got {total_voting_weight}"
        )

    if settings is not None and settings.min_duration:
        if end_date - start_date < timedelta(seconds=settings.min_duration):
            raise ValueError(
                f"Voting window shorter than the plugin minimum of {settings.min_duration}s"
            )

    common = dict(
        id=_identifier(plugin_address, local_id),
        dao_address=dao_address,
        creator_address=creator_address,
        creation_date=creation_date or datetime.now(timezone.utc),
        start_date=start_date,
        end_date=end_date,
        status=ProposalStatus.PENDING,
        title=title,
        summary=summary,
    )

    if token is not None:
        return TokenVotingProposal(**common, token=token, total_voting_weight=total_voting_weight)
    if multisig:
        return MultisigProposal(**common)
    return AddressListProposal(**common, total_voting_weight=total_voting_weight)


def _identifier(plugin_address: str, local_id: int) -> ProposalIdentifier:
    # validates the pair the same way encoding does
    encode_proposal_id(plugin_address, local_id)
    return ProposalIdentifier(plugin_address, local_id)

