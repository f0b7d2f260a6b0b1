"""
govsync/feed.py

Paginated proposal feed.

Fetches proposal pages from a network collaborator, newest first, and runs
each page through the ProposalReconciler so pending local proposals appear
at the top of the first page.

Usage:
    feed = ProposalFeed(fetcher, ProposalReconciler(cache))
    await feed.load_page(dao_address)
    await feed.load_more(dao_address)
    for proposal in feed.items:
        ...
"""

import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from .config import DEFAULT_PAGE_SIZE, DEFAULT_SORT_BY, DEFAULT_SORT_DIRECTION
from .governance.models import ProposalStatus, ProposalVariant, VotingSettings, parse_settings
from .governance.reconcile import ProposalReconciler

logger = logging.getLogger("govsync.feed")


@dataclass
class PageQuery:
    """One page request."""
    limit: int
    skip: int = 0
    status: Optional[ProposalStatus] = None
    sort_by: str = DEFAULT_SORT_BY
    direction: str = DEFAULT_SORT_DIRECTION

    def to_dict(self) -> dict:
        return {
            "limit": self.limit,
            "skip": self.skip,
            "status": self.status.value if self.status else None,
            "sort_by": self.sort_by,
            "direction": self.direction,
        }


class ProposalFetcher(Protocol):
    """Network collaborator returning raw proposal records."""

    async def fetch_proposals_page(self, dao_address: str, query: PageQuery) -> List[dict]:
        ...


class ProposalFeed:
    """
    Holds the proposals loaded so far for one DAO.

    `items` is replaced when the first page loads and extended by load_more().
    A failed fetch is logged and kept in `error`; `items` stay as they were.
    """

    def __init__(
        self,
        fetcher: ProposalFetcher,
        reconciler: ProposalReconciler,
        page_size: int = DEFAULT_PAGE_SIZE,
        settings_provider: Any = None,
    ):
        """
        Args:
            fetcher: Source of proposal pages
            reconciler: Merges the pending cache into fetched pages
            page_size: Proposals per page
            settings_provider: Optional object with
                get_voting_settings(plugin_address), sync or async
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.fetcher = fetcher
        self.reconciler = reconciler
        self.page_size = page_size
        self.settings_provider = settings_provider

        self.items: List[ProposalVariant] = []
        self.error: Optional[Exception] = None
        self.is_loading = False
        self.has_more = True
        self._fetched = 0
        self._settings: Dict[str, Optional[VotingSettings]] = {}

    async def load_page(
        self,
        dao_address: str,
        skip: int = 0,
        status: Optional[ProposalStatus] = None,
        now: Optional[datetime] = None,
    ) -> List[ProposalVariant]:
        """
        Fetch and reconcile one page.

        Returns:
            The reconciled page (empty on failure)
        """
        query = PageQuery(limit=self.page_size, skip=skip, status=status)
        self.is_loading = True
        try:
            records = await self.fetcher.fetch_proposals_page(dao_address, query)
            records = list(records or [])
            settings = await self._settings_for(records)
            page = self.reconciler.reconcile(dao_address, records, skip=skip, now=now, settings=settings)
        except Exception as e:
            logger.error(f"Failed to load proposals of {dao_address} (skip={skip}): {e}")
            self.error = e
            return []
        finally:
            self.is_loading = False

        self.error = None
        if skip == 0:
            self.items = page
            self._fetched = len(records)
        else:
            self.items = self.items + page
            self._fetched = skip + len(records)
        self.has_more = len(records) >= self.page_size

        logger.info(f"Loaded {len(records)} proposals of {dao_address} (skip={skip})")
        return page

    async def load_more(
        self,
        dao_address: str,
        status: Optional[ProposalStatus] = None,
        now: Optional[datetime] = None,
    ) -> List[ProposalVariant]:
        """Fetch the page after the ones already loaded."""
        if not self.has_more:
            return []
        return await self.load_page(dao_address, skip=self._fetched, status=status, now=now)

    async def _settings_for(self, records: List[dict]) -> Dict[str, VotingSettings]:
        """Voting settings of every plugin on the page, fetched once per plugin."""
        if self.settings_provider is None:
            return {}

        for record in records:
            if not isinstance(record, dict):
                plugin = getattr(record, "plugin_address", None)
            else:
                plugin = record.get("plugin_address") or record.get("pluginAddress")
            if not plugin and isinstance(record, dict) and "_" in str(record.get("id", "")):
                plugin = record["id"].split("_")[0]
            if not plugin or plugin in self._settings:
                continue

            result = self.settings_provider.get_voting_settings(plugin)
            if inspect.isawaitable(result):
                result = await result
            self._settings[plugin] = parse_settings(result) if result is not None else None

        return {k: v for k, v in self._settings.items() if v is not None}
