import os
import traceback
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.logger import logger
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from appshelf.api.dtos import (
    AppCreateRequest,
    AppListResponse,
    AppUpdateRequest,
    AppWriteResponse,
    AssetUploadInfo,
    AssetUploadResponse,
    LoginRequest,
    LoginResponse,
    StatsResponse,
    SuccessResponse,
)
from appshelf.api.routers.catalog import get_synchronizer
from appshelf.assets.blobs import asset_path
from appshelf.auth.gate import AdminGate
from appshelf.catalog.errors import (
    AuthorizationDenied,
    CatalogError,
    RemoteWriteFailed,
    ValidationFailed,
)
from appshelf.catalog.filtering import filter_items
from appshelf.catalog.models import AdminSession, Category
from appshelf.catalog.stats import compute_stats
from appshelf.catalog.synchronizer import CatalogSynchronizer
from appshelf.catalog.validation import IMAGE_EXTENSIONS
from appshelf.store.base import RecordNotFound

router = APIRouter(prefix="/admin", tags=["Admin"])

bearer_scheme = HTTPBearer(auto_error=False)

ASSET_KINDS = ("logos", "screenshots")


def get_gate(request: Request) -> AdminGate:
    return request.app.state.gate


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    gate: AdminGate = Depends(get_gate),
) -> AdminSession:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Admin session required")
    try:
        return gate.require_admin(credentials.credentials)
    except AuthorizationDenied as exc:
        raise HTTPException(status_code=403, detail=exc.to_dict())


def _http_error(exc: CatalogError) -> HTTPException:
    if isinstance(exc, ValidationFailed):
        return HTTPException(status_code=422, detail=exc.to_dict())
    if isinstance(exc, RemoteWriteFailed) and isinstance(exc.cause, RecordNotFound):
        return HTTPException(status_code=404, detail=exc.to_dict())
    if isinstance(exc, AuthorizationDenied):
        return HTTPException(status_code=403, detail=exc.to_dict())
    return HTTPException(status_code=502, detail=exc.to_dict())


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, gate: AdminGate = Depends(get_gate)):
    try:
        session = await gate.login(payload.email, payload.password)
    except AuthorizationDenied as exc:
        raise HTTPException(status_code=401, detail=exc.to_dict())
    return LoginResponse(message="Logged in successfully", data=session)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    session: AdminSession = Depends(require_admin), gate: AdminGate = Depends(get_gate)
):
    await gate.logout(session.token)
    return SuccessResponse(message="Logged out successfully")


@router.get("/apps", response_model=AppListResponse)
def list_apps(
    q: Optional[str] = Query(None, description="Search title and description"),
    category: Optional[Category] = Query(None, description="Category filter"),
    _session: AdminSession = Depends(require_admin),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    items = synchronizer.items
    return AppListResponse(data=list(filter_items(items, q, category)), total=len(items))


@router.post("/apps", response_model=AppWriteResponse, status_code=201)
async def create_app(
    payload: AppCreateRequest,
    _session: AdminSession = Depends(require_admin),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    try:
        item_id = await synchronizer.create(payload)
    except CatalogError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.error("Error creating app: %s\n%s", exc, traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(exc))
    return AppWriteResponse(message="App added successfully!", data={"id": item_id})


@router.put("/apps/{app_id}", response_model=AppWriteResponse)
async def update_app(
    app_id: str,
    payload: AppUpdateRequest,
    _session: AdminSession = Depends(require_admin),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    patch = payload.model_dump(exclude_unset=True)
    try:
        await synchronizer.update(app_id, patch)
    except CatalogError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.error("Error updating app %s: %s\n%s", app_id, exc, traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(exc))
    return AppWriteResponse(message="App updated successfully!", data={"id": app_id})


@router.delete("/apps/{app_id}", response_model=AppWriteResponse)
async def delete_app(
    app_id: str,
    _session: AdminSession = Depends(require_admin),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    try:
        failed_assets = await synchronizer.delete(app_id)
    except CatalogError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.error("Error deleting app %s: %s\n%s", app_id, exc, traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(exc))
    return AppWriteResponse(
        message="App deleted successfully!",
        data={"id": app_id, "failed_assets": failed_assets},
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    _session: AdminSession = Depends(require_admin),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    return StatsResponse(data=compute_stats(synchronizer.items))


@router.post("/assets", response_model=AssetUploadResponse, status_code=201)
async def upload_asset(
    request: Request,
    kind: str = Query("screenshots", description="logos or screenshots"),
    file: UploadFile = File(...),
    _session: AdminSession = Depends(require_admin),
):
    if kind not in ASSET_KINDS:
        raise HTTPException(status_code=400, detail=f"Unknown asset kind '{kind}'")
    filename = file.filename or ""
    if os.path.splitext(filename)[1].lower() not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=422, detail="Only image uploads are allowed")

    blobs = request.app.state.blobs
    path = asset_path(kind, filename)
    try:
        data = await file.read()
        url = await blobs.upload(path, data, content_type=file.content_type)
    except Exception as exc:
        logger.error("Error uploading asset %s: %s\n%s", filename, exc, traceback.format_exc())
        raise HTTPException(status_code=502, detail="Failed to upload asset")
    return AssetUploadResponse(
        message="Asset uploaded", data=AssetUploadInfo(url=url, path=path)
    )
