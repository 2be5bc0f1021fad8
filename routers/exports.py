# routers/exports.py

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import has_permission
from core.supabase_client import get_supabase_client
from core.errors import ExportError
from models.export import ExportRequest
from services.export_engine import ExportEngine, EXPORT_REGISTRY, get_export_config


router = APIRouter(
    prefix="/exports",
    tags=["Exports"],
)


@router.get("", summary="Entities the current user can export")
def list_exportable(current_user: CurrentUser = Depends(get_current_user)):
    return {
        "success": True,
        "data": [
            {"entity": name, "display_name": config.display_name, "formats": config.supported_formats}
            for name, config in EXPORT_REGISTRY.items()
            if has_permission(current_user, f"{config.resource}:read")
        ],
    }


@router.get("/{entity}/config", summary="Fields and formats of an exportable entity")
def export_config(entity: str, current_user: CurrentUser = Depends(get_current_user)):
    try:
        return get_export_config(entity).to_dict()
    except ExportError as e:
        raise e.to_http()


@router.post("/{entity}/preview", summary="First rows of an export, formatted")
def export_preview(
    entity: str,
    options: ExportRequest,
    current_user: CurrentUser = Depends(get_current_user),
):
    engine = ExportEngine(get_supabase_client())
    try:
        config = get_export_config(entity)
        if not has_permission(current_user, f"{config.resource}:read"):
            raise ExportError(f"Not allowed to export '{entity}'", "PERMISSION_DENIED")
        return engine.preview(entity, options)
    except ExportError as e:
        raise e.to_http()


@router.post(
    "/{entity}",
    summary="Export an entity as CSV, XLSX, PDF or JSON",
    response_class=Response,
)
def export_entity(
    entity: str,
    options: ExportRequest,
    current_user: CurrentUser = Depends(get_current_user),
):
    engine = ExportEngine(get_supabase_client())
    try:
        result = engine.export(entity, options, current_user)
    except ExportError as e:
        raise e.to_http()

    return Response(
        content=result.content,
        media_type=result.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Record-Count": str(result.record_count),
        },
    )
