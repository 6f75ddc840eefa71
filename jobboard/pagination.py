from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterable

from .errors import UnknownClientError

if TYPE_CHECKING:
    from .client import ApiClient


@dataclass
class Page:
    count: int
    next: str | None
    previous: str | None
    results: list[Any] = field(default_factory=list)
    unread_count: int | None = None

    @classmethod
    def from_payload(cls, payload) -> "Page":
        if isinstance(payload, list):
            return cls(count=len(payload), next=None, previous=None, results=list(payload))
        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise UnknownClientError("Received an invalid list response from the server.")

        results = payload["results"]
        count = payload.get("count")
        unread_count = payload.get("unread_count")
        return cls(
            count=count if isinstance(count, int) else len(results),
            next=payload.get("next") or None,
            previous=payload.get("previous") or None,
            results=results,
            unread_count=unread_count if isinstance(unread_count, int) else None,
        )


def clean_params(filters: dict | None, *, drop_false: bool = False) -> dict:
    cleaned = {}
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        if drop_false and value is False:
            continue
        cleaned[key] = value
    return cleaned


async def iter_pages(
    client: "ApiClient",
    path: str,
    params: dict | None = None,
    *,
    max_pages: int | None = None,
) -> AsyncIterator[Page]:
    """Yield pages of a list endpoint, following ``next`` links."""
    url: str | None = path
    request_params = params
    fetched = 0
    while url is not None:
        page = Page.from_payload(await client.fetch("GET", url, params=request_params))
        yield page
        fetched += 1
        if max_pages is not None and fetched >= max_pages:
            return
        url = page.next
        # The next link already carries the query string.
        request_params = None


def _category_key(category: dict):
    return category.get("id") or category.get("slug") or category.get("name")


def extract_categories(jobs: Iterable[dict]) -> list[dict]:
    """Collect the categories embedded in job results, first seen first."""
    seen = set()
    categories: list[dict] = []
    for job in jobs:
        category = job.get("category") if isinstance(job, dict) else None
        if not isinstance(category, dict):
            continue
        key = _category_key(category)
        if key is None or key in seen:
            continue
        seen.add(key)
        categories.append(dict(category))
    return categories


def merge_categories(*groups: Iterable[dict]) -> list[dict]:
    """Merge category lists by id; later groups only fill missing fields."""
    merged: dict[Any, dict] = {}
    for group in groups:
        for category in group:
            key = _category_key(category)
            if key is None:
                continue
            existing = merged.get(key)
            if existing is None:
                merged[key] = dict(category)
                continue
            for field_name, value in category.items():
                if existing.get(field_name) in (None, "") and value not in (None, ""):
                    existing[field_name] = value
    return list(merged.values())
