from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


MAX_SCREENSHOTS = 10
MAX_TAGS = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(str, Enum):
    GAMES = "Games"
    SOCIAL = "Social"
    PRODUCTIVITY = "Productivity"
    ENTERTAINMENT = "Entertainment"
    EDUCATION = "Education"
    BUSINESS = "Business"
    TOOLS = "Tools"
    HEALTH = "Health"
    MUSIC = "Music"
    PHOTOGRAPHY = "Photography"
    OTHER = "Other"


class CatalogDraft(BaseModel):
    """Editable fields of a catalog item, staged by the admin form."""

    title: str = ""
    description: str = ""
    apk_link: str = ""
    website_link: Optional[str] = None
    logo_url: Optional[str] = None
    screenshots: List[str] = Field(default_factory=list)
    category: Category = Category.OTHER
    tags: List[str] = Field(default_factory=list)
    featured: bool = False
    rating: Optional[float] = None
    version: Optional[str] = None
    size: Optional[str] = None

    def normalized(self) -> "CatalogDraft":
        """Trim text fields and turn blank optionals into None."""

        def _blank_to_none(value: Optional[str]) -> Optional[str]:
            if value is None:
                return None
            value = value.strip()
            return value or None

        return self.model_copy(
            update={
                "title": self.title.strip(),
                "description": self.description.strip(),
                "apk_link": self.apk_link.strip(),
                "website_link": _blank_to_none(self.website_link),
                "logo_url": _blank_to_none(self.logo_url),
                "screenshots": [s.strip() for s in self.screenshots if s.strip()],
                "tags": [t.strip() for t in self.tags if t.strip()],
                "version": _blank_to_none(self.version),
                "size": _blank_to_none(self.size),
            }
        )


class CatalogItem(CatalogDraft):
    id: str
    downloads: int = Field(default=0, ge=0)
    views: Optional[int] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_draft(self) -> CatalogDraft:
        return CatalogDraft.model_validate(
            self.model_dump(include=set(CatalogDraft.model_fields))
        )

    def asset_references(self) -> List[str]:
        references = []
        if self.logo_url:
            references.append(self.logo_url)
        references.extend(self.screenshots)
        return references


class SnapshotReceived(BaseModel):
    items: Tuple[CatalogItem, ...] = ()
    received_at: datetime = Field(default_factory=utcnow)


class AdminSession(BaseModel):
    uid: str
    email: str
    is_admin: bool = False
    token: Optional[str] = None


class CatalogStats(BaseModel):
    total_apps: int = 0
    total_downloads: int = 0
    featured_apps: int = 0
    apps_with_screenshots: int = 0
    categories: Dict[str, int] = Field(default_factory=dict)
    top_downloads: List[CatalogItem] = Field(default_factory=list)
