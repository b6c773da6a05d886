from typing import TYPE_CHECKING, Iterable, Optional, Tuple, Union

from appshelf.catalog.models import CatalogItem, Category

if TYPE_CHECKING:
    from appshelf.catalog.synchronizer import CatalogSynchronizer


def _matches(item: CatalogItem, needle: str, category: Optional[Category]) -> bool:
    if category is not None and item.category != category:
        return False
    if not needle:
        return True
    return needle in item.title.lower() or needle in item.description.lower()


def filter_items(
    items: Iterable[CatalogItem],
    search: Optional[str] = None,
    category: Optional[Union[Category, str]] = None,
) -> Tuple[CatalogItem, ...]:
    """Return the items whose title or description contains ``search``.

    Matching is case-insensitive and keeps the input order. An empty search
    matches everything; ``category`` narrows the result when given.
    """
    needle = (search or "").lower()
    if category is not None and not isinstance(category, Category):
        category = Category(category)
    return tuple(item for item in items if _matches(item, needle, category))


class CatalogView:
    """Filtered view over a synchronizer, recomputed only when inputs change."""

    def __init__(
        self,
        synchronizer: "CatalogSynchronizer",
        search: str = "",
        category: Optional[Category] = None,
    ):
        self.synchronizer = synchronizer
        self.search = search
        self.category = category
        self._key = None
        self._visible: Tuple[CatalogItem, ...] = ()

    @property
    def visible(self) -> Tuple[CatalogItem, ...]:
        key = (
            self.synchronizer.version,
            self.synchronizer.local_revision,
            self.search,
            self.category,
        )
        if key != self._key:
            self._visible = filter_items(
                self.synchronizer.items, self.search, self.category
            )
            self._key = key
        return self._visible

    @property
    def total(self) -> int:
        return len(self.synchronizer.items)
