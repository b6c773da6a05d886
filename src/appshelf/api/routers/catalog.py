import traceback
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.logger import logger

from appshelf.api.dtos import (
    AppDetailResponse,
    AppListResponse,
    DownloadInfo,
    DownloadResponse,
)
from appshelf.catalog.filtering import filter_items
from appshelf.catalog.models import Category
from appshelf.catalog.synchronizer import CatalogSynchronizer

router = APIRouter(prefix="/catalog", tags=["Catalog"])


def get_synchronizer(request: Request) -> CatalogSynchronizer:
    return request.app.state.synchronizer


@router.get("/apps", response_model=AppListResponse)
def list_apps(
    q: Optional[str] = Query(None, description="Search title and description"),
    category: Optional[Category] = Query(None, description="Category filter"),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    try:
        items = synchronizer.items
        visible = filter_items(items, q, category)
        return AppListResponse(data=list(visible), total=len(items))
    except Exception as exc:
        logger.error("Error listing catalog: %s\n%s", exc, traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/apps/{app_id}", response_model=AppDetailResponse)
def get_app(app_id: str, synchronizer: CatalogSynchronizer = Depends(get_synchronizer)):
    item = synchronizer.get(app_id)
    if not item:
        raise HTTPException(status_code=404, detail=f"App '{app_id}' not found")
    return AppDetailResponse(data=item)


@router.post("/apps/{app_id}/download", response_model=DownloadResponse)
async def download_app(
    app_id: str, synchronizer: CatalogSynchronizer = Depends(get_synchronizer)
):
    item = synchronizer.get(app_id)
    if not item:
        raise HTTPException(status_code=404, detail=f"App '{app_id}' not found")

    # The link is returned even if the remote counter update fails later.
    synchronizer.increment_downloads(app_id)
    item = synchronizer.get(app_id) or item
    return DownloadResponse(
        message="Download started!",
        data=DownloadInfo(app_id=app_id, apk_link=item.apk_link, downloads=item.downloads),
    )
