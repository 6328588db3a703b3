from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from feedhub.aggregation.aggregator import aggregate
from feedhub.errors import AuthRejected, SourceUnavailable
from feedhub.models.types import AggregateResult, ContentItem, PageParams, PageResult

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Results of one concurrent fetch round, split per kind."""

    pages: dict[str, list[ContentItem]] = field(default_factory=dict)
    has_more: dict[str, bool] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    auth_error: AuthRejected | None = None


async def fetch_pages(
    adapters: Mapping[str, "SourceAdapter"],
    params_by_kind: Mapping[str, PageParams],
    executor: Executor | None = None,
) -> FetchOutcome:
    """Fetch one page from every requested adapter concurrently.

    Adapters block on HTTP, so each call runs in *executor* while the event
    loop waits for all of them. A failing kind is recorded in ``failures``
    and contributes no items; it never fails the whole round.
    """
    loop = asyncio.get_running_loop()
    kinds = [kind for kind in params_by_kind if kind in adapters]
    futures = [
        loop.run_in_executor(executor, adapters[kind].fetch_page, params_by_kind[kind])
        for kind in kinds
    ]
    results = await asyncio.gather(*futures, return_exceptions=True)

    outcome = FetchOutcome()
    for kind, result in zip(kinds, results):
        if isinstance(result, PageResult):
            outcome.pages[kind] = result.items
            outcome.has_more[kind] = result.has_more
        elif isinstance(result, AuthRejected):
            logger.error("Authorization rejected while fetching %s: %s", kind, result)
            outcome.failures[kind] = str(result)
            outcome.auth_error = result
        elif isinstance(result, SourceUnavailable):
            logger.warning("Source %s unavailable: %s", kind, result)
            outcome.failures[kind] = str(result)
        elif isinstance(result, Exception):
            logger.error("Unexpected error fetching %s: %s", kind, result, exc_info=result)
            outcome.failures[kind] = str(SourceUnavailable(kind, str(result)))
        else:
            raise result
    return outcome


async def aggregate_page(
    adapters: Mapping[str, "SourceAdapter"],
    params_by_kind: Mapping[str, PageParams],
    order: Sequence[str],
    query: str,
    page: int,
    max_pages: int,
    executor: Executor | None = None,
) -> tuple[AggregateResult, FetchOutcome]:
    """Fetch a single page from all kinds and aggregate it without session state."""
    outcome = await fetch_pages(adapters, params_by_kind, executor)
    result = aggregate(
        outcome.pages,
        order,
        query,
        page=page,
        max_pages=max_pages,
        kind_has_more=outcome.has_more,
        failures=outcome.failures,
    )
    return result, outcome
