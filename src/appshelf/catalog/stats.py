from collections import Counter
from typing import Iterable

from appshelf.catalog.models import CatalogItem, CatalogStats

TOP_DOWNLOADS_LIMIT = 5


def compute_stats(items: Iterable[CatalogItem]) -> CatalogStats:
    items = list(items)
    categories = Counter(item.category.value for item in items)
    top = sorted(items, key=lambda item: item.downloads, reverse=True)
    return CatalogStats(
        total_apps=len(items),
        total_downloads=sum(item.downloads for item in items),
        featured_apps=sum(1 for item in items if item.featured),
        apps_with_screenshots=sum(1 for item in items if item.screenshots),
        categories=dict(categories.most_common()),
        top_downloads=top[:TOP_DOWNLOADS_LIMIT],
    )
