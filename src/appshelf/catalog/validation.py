from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from appshelf.catalog.errors import ValidationFailed
from appshelf.catalog.models import (
    MAX_SCREENSHOTS,
    MAX_TAGS,
    CatalogDraft,
    CatalogItem,
)

if TYPE_CHECKING:
    from appshelf.assets.blobs import BlobStore
    from appshelf.catalog.synchronizer import CatalogSynchronizer


IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
MIN_RATING = 0.0
MAX_RATING = 5.0


def is_absolute_url(value: Optional[str]) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def has_image_extension(value: str) -> bool:
    path = urlparse(value.strip()).path
    return path.lower().endswith(IMAGE_EXTENSIONS)


def _is_uploaded(value: str, asset_store: Optional["BlobStore"]) -> bool:
    return asset_store is not None and asset_store.owns(value)


def check_image_url(
    field: str, value: str, asset_store: Optional["BlobStore"] = None
):
    if not is_absolute_url(value):
        raise ValidationFailed(field, f"{_label(field)} must be a valid URL")
    if _is_uploaded(value, asset_store):
        return
    if not has_image_extension(value):
        raise ValidationFailed(
            field,
            f"{_label(field)} must point to an image "
            f"({', '.join(ext.lstrip('.') for ext in IMAGE_EXTENSIONS)})",
        )


def validate_draft(
    draft: CatalogDraft, asset_store: Optional["BlobStore"] = None
) -> CatalogDraft:
    """Check a draft rule by rule and return its normalized form.

    The first violated rule raises ValidationFailed; later rules are not
    evaluated.
    """
    draft = draft.normalized()

    if not draft.title:
        raise ValidationFailed("title", "App title is required")
    if not draft.description:
        raise ValidationFailed("description", "App description is required")
    if not draft.apk_link or not is_absolute_url(draft.apk_link):
        raise ValidationFailed("apk_link", "Valid APK download link is required")
    if draft.website_link and not is_absolute_url(draft.website_link):
        raise ValidationFailed("website_link", "Website link must be a valid URL")
    if draft.logo_url:
        check_image_url("logo_url", draft.logo_url, asset_store)

    if len(draft.screenshots) > MAX_SCREENSHOTS:
        raise ValidationFailed(
            "screenshots", f"Maximum {MAX_SCREENSHOTS} screenshots allowed"
        )
    for screenshot in draft.screenshots:
        check_image_url("screenshots", screenshot, asset_store)

    if len(draft.tags) > MAX_TAGS:
        raise ValidationFailed("tags", f"Maximum {MAX_TAGS} tags allowed")
    if len(set(draft.tags)) != len(draft.tags):
        raise ValidationFailed("tags", "Tag already exists")

    if draft.rating is not None and not MIN_RATING <= draft.rating <= MAX_RATING:
        raise ValidationFailed(
            "rating", f"Rating must be between {MIN_RATING:g} and {MAX_RATING:g}"
        )

    return draft


def _label(field: str) -> str:
    labels = {
        "logo_url": "Logo URL",
        "screenshots": "Screenshot URL",
    }
    return labels.get(field, field.replace("_", " ").capitalize())


class DraftForm:
    """Stages a new or edited catalog item until it is submitted."""

    def __init__(self, asset_store: Optional["BlobStore"] = None):
        self.asset_store = asset_store
        self.draft = CatalogDraft()
        self.editing_id: Optional[str] = None

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def edit(self, item: CatalogItem):
        self.draft = item.to_draft()
        self.editing_id = item.id

    def reset(self):
        self.draft = CatalogDraft()
        self.editing_id = None

    def set_fields(self, **fields):
        self.draft = self.draft.model_copy(update=fields)

    def add_screenshot(self, url: str):
        url = url.strip()
        if not url:
            raise ValidationFailed("screenshots", "Screenshot URL is required")
        if len(self.draft.screenshots) >= MAX_SCREENSHOTS:
            raise ValidationFailed(
                "screenshots", f"Maximum {MAX_SCREENSHOTS} screenshots allowed"
            )
        check_image_url("screenshots", url, self.asset_store)
        self.draft = self.draft.model_copy(
            update={"screenshots": [*self.draft.screenshots, url]}
        )

    def remove_screenshot(self, index: int):
        screenshots = list(self.draft.screenshots)
        del screenshots[index]
        self.draft = self.draft.model_copy(update={"screenshots": screenshots})

    def add_tag(self, tag: str):
        tag = tag.strip()
        if not tag:
            raise ValidationFailed("tags", "Tag is required")
        if len(self.draft.tags) >= MAX_TAGS:
            raise ValidationFailed("tags", f"Maximum {MAX_TAGS} tags allowed")
        if tag in self.draft.tags:
            raise ValidationFailed("tags", "Tag already exists")
        self.draft = self.draft.model_copy(update={"tags": [*self.draft.tags, tag]})

    def remove_tag(self, index: int):
        tags = list(self.draft.tags)
        del tags[index]
        self.draft = self.draft.model_copy(update={"tags": tags})

    async def submit(self, synchronizer: "CatalogSynchronizer") -> str:
        """Validate, write through the synchronizer and reset the form.

        Returns the id of the created or updated item. On any failure the
        draft and edit mode are kept so the admin can re-submit.
        """
        draft = validate_draft(self.draft, self.asset_store)
        if self.editing_id:
            item_id = self.editing_id
            await synchronizer.update(item_id, draft.model_dump())
        else:
            item_id = await synchronizer.create(draft)
        self.reset()
        return item_id
