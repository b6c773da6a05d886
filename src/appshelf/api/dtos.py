from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from appshelf.catalog.models import (
    AdminSession,
    CatalogDraft,
    CatalogItem,
    CatalogStats,
    Category,
)


class BaseResponse(BaseModel):
    status: str = "success"
    message: Optional[str] = None


class SuccessResponse(BaseResponse):
    pass


class DataResponse(BaseResponse):
    data: Optional[Any] = None


class AppListResponse(DataResponse):
    data: List[CatalogItem] = []
    total: int = 0


class AppDetailResponse(DataResponse):
    data: CatalogItem


class AppWriteResponse(DataResponse):
    data: Dict[str, Any] = {}


class DownloadInfo(BaseModel):
    app_id: str
    apk_link: str
    downloads: int


class DownloadResponse(DataResponse):
    data: DownloadInfo


class StatsResponse(DataResponse):
    data: CatalogStats


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(DataResponse):
    data: AdminSession


class AssetUploadInfo(BaseModel):
    url: str
    path: str


class AssetUploadResponse(DataResponse):
    data: AssetUploadInfo


class AppCreateRequest(CatalogDraft):
    pass


class AppUpdateRequest(BaseModel):
    """Partial edit; only the fields that are sent are written."""

    title: Optional[str] = None
    description: Optional[str] = None
    apk_link: Optional[str] = None
    website_link: Optional[str] = None
    logo_url: Optional[str] = None
    screenshots: Optional[List[str]] = None
    category: Optional[Category] = None
    tags: Optional[List[str]] = None
    featured: Optional[bool] = None
    rating: Optional[float] = None
    version: Optional[str] = None
    size: Optional[str] = None
