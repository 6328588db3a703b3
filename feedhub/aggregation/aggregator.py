from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from feedhub.models.types import KINDS, AggregateResult, ContentItem

logger = logging.getLogger(__name__)


def concatenate(pages: Mapping[str, Sequence[ContentItem]]) -> list[ContentItem]:
    """Join the per-kind lists in kind order, dropping repeated ids.

    The first occurrence of an id wins, so one aggregation pass never
    yields two items with the same id.
    """
    seen: set[str] = set()
    combined: list[ContentItem] = []
    for kind in KINDS:
        for item in pages.get(kind, ()):
            if item.id in seen:
                logger.debug("Dropping duplicate item %s", item.id)
                continue
            seen.add(item.id)
            combined.append(item)
    return combined


def filter_items(items: Iterable[ContentItem], query: str) -> list[ContentItem]:
    """Keep items whose title or description contains *query*, ignoring case."""
    query = (query or "").strip()
    if not query:
        return list(items)
    return [item for item in items if item.matches(query)]


def apply_order(items: Sequence[ContentItem], order: Sequence[str]) -> list[ContentItem]:
    """Arrange *items* by the id sequence *order*.

    Ids in *order* that are not among *items* are skipped. Items whose id is
    missing from *order* follow the ordered ones, in their incoming order.
    """
    if not order:
        return list(items)

    by_id = {item.id: item for item in items}
    placed: set[str] = set()
    ordered: list[ContentItem] = []
    for item_id in order:
        item = by_id.get(item_id)
        if item is None or item_id in placed:
            continue
        placed.add(item_id)
        ordered.append(item)

    ordered.extend(item for item in items if item.id not in placed)
    return ordered


def compute_has_more(page: int, max_pages: int, kind_has_more: Mapping[str, bool]) -> bool:
    return page < max_pages and any(kind_has_more.values())


def aggregate(
    pages: Mapping[str, Sequence[ContentItem]],
    order: Sequence[str],
    query: str,
    page: int = 1,
    max_pages: int = 5,
    kind_has_more: Mapping[str, bool] | None = None,
    failures: Mapping[str, str] | None = None,
) -> AggregateResult:
    """Run one aggregation pass: concatenate, filter, then reorder.

    Filtering happens before ordering, so an item hidden by the search query
    stays hidden wherever the stored order puts it.
    """
    combined = concatenate(pages)
    visible = filter_items(combined, query)
    ordered = apply_order(visible, order)
    has_more = compute_has_more(page, max_pages, kind_has_more or {})
    logger.debug(
        "Aggregated %d of %d items for page %d (query=%r, has_more=%s)",
        len(ordered), len(combined), page, query, has_more,
    )
    return AggregateResult(items=ordered, has_more=has_more, failures=dict(failures or {}))
