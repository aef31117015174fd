"""
Admin Dynamic Configuration endpoints.

Everything here except ``GET /public`` requires an admin. Item routes exist
for every collection of the document:

    /education-levels  /subjects  /grades
    /cities  /districts  /provinces
    /profile-sections  /profile-templates

Mutations respond with the whole updated document and leave an audit log
entry.
"""
from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.config import settings
from app.core.database import get_db
from app.models import COLLECTION_KEYS, User
from app.modules.auth.dependencies import get_current_admin
from app.schemas.common import api_response
from app.schemas.dynamic_config import (
    BrandingSettingsUpdate,
    DynamicConfigUpdate,
    DynamicField,
    DynamicFieldUpdate,
    GeneralSettingsUpdate,
    SectionOrder,
)
from app.services.audit_service import record_audit
from app.services.dynamic_config_service import COLLECTIONS, DynamicConfigService, config_to_dict
from app.utils.pagination import ItemListQuery

router = APIRouter()


def _key(key: Optional[str]) -> str:
    return key or settings.DEFAULT_CONFIG_KEY


def get_config_service(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
) -> DynamicConfigService:
    return DynamicConfigService(db, actor_id=str(current_admin.id))


# ==================== Document ====================

@router.get("")
async def get_config(
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service)
):
    """Get the full configuration document, creating the default on first use"""
    config = await service.get_config(_key(key))
    await db.commit()
    return api_response(config_to_dict(config))


@router.get("/public")
async def get_public_config(
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Active taxonomies, visible sections and active templates (no auth)"""
    public = await DynamicConfigService(db).get_public_config(_key(key))
    await db.commit()
    return api_response(public)


@router.put("")
async def update_config(
    update_data: DynamicConfigUpdate,
    request: Request,
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    """Replace the top-level fields that were sent"""
    config = await service.update_config(_key(key), update_data)
    record_audit(db, current_admin, "config.updated", config.key,
                 {"key": config.key, "fields": sorted(update_data.model_fields_set)}, request)
    await db.commit()
    return api_response(config_to_dict(config), "Configuration updated successfully")


@router.put("/settings/general")
async def update_general_settings(
    update_data: GeneralSettingsUpdate,
    request: Request,
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    config = await service.update_general_settings(_key(key), update_data)
    record_audit(db, current_admin, "config.general_settings.updated", config.key,
                 {"key": config.key, "changes": update_data.to_patch()}, request)
    await db.commit()
    return api_response(config_to_dict(config), "General settings updated successfully")


@router.put("/settings/branding")
async def update_branding_settings(
    update_data: BrandingSettingsUpdate,
    request: Request,
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    config = await service.update_branding_settings(_key(key), update_data)
    record_audit(db, current_admin, "config.branding_settings.updated", config.key,
                 {"key": config.key, "changes": update_data.to_patch()}, request)
    await db.commit()
    return api_response(config_to_dict(config), "Branding settings updated successfully")


# ==================== Profile section extras ====================
# Declared before the generic item routes so "reorder" is not taken for an id

@router.put("/profile-sections/reorder")
async def reorder_profile_sections(
    request: Request,
    orders: List[SectionOrder] = Body(...),
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    """Apply ``[{id, order}]`` and sort the catalog by order"""
    config = await service.reorder_profile_sections(_key(key), orders)
    record_audit(db, current_admin, "config.profile_sections.reordered", config.key,
                 {"key": config.key, "orders": [o.to_document() for o in orders]}, request)
    await db.commit()
    return api_response(config_to_dict(config), "Profile sections reordered successfully")


@router.post("/profile-sections/{section_id}/fields", status_code=status.HTTP_201_CREATED)
async def add_section_field(
    section_id: str,
    field: DynamicField,
    request: Request,
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    config = await service.add_section_field(_key(key), section_id, field)
    record_audit(db, current_admin, "config.section_field.added", config.key,
                 {"key": config.key, "sectionId": section_id, "fieldId": field.id}, request)
    await db.commit()
    return api_response(config_to_dict(config), "Field added successfully")


@router.put("/profile-sections/{section_id}/fields/{field_id}")
async def update_section_field(
    section_id: str,
    field_id: str,
    update_data: DynamicFieldUpdate,
    request: Request,
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    config = await service.update_section_field(_key(key), section_id, field_id, update_data)
    record_audit(db, current_admin, "config.section_field.updated", config.key,
                 {"key": config.key, "sectionId": section_id, "fieldId": field_id}, request)
    await db.commit()
    return api_response(config_to_dict(config), "Field updated successfully")


@router.delete("/profile-sections/{section_id}/fields/{field_id}")
async def remove_section_field(
    section_id: str,
    field_id: str,
    request: Request,
    key: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicConfigService = Depends(get_config_service),
    current_admin: User = Depends(get_current_admin)
):
    version = (await service.get_config(_key(key))).version
    config = await service.remove_section_field(_key(key), section_id, field_id)
    if config.version != version:
        record_audit(db, current_admin, "config.section_field.removed", config.key,
                     {"key": config.key, "sectionId": section_id, "fieldId": field_id}, request)
    await db.commit()
    return api_response(config_to_dict(config), "Field removed successfully")


# ==================== Collection items ====================

def _register_collection_routes(path: str, collection: str) -> None:
    """List/add/update/remove routes for one collection of the document"""
    info = COLLECTIONS[collection]
    create_schema = info.create_schema
    update_schema = info.update_schema
    tags = [f"Admin {info.label}s"]

    @router.get(f"/{path}", name=f"list_{collection}", tags=tags)
    async def list_items(
        key: Optional[str] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
        sort: str = Query("order"),
        order: str = Query("asc", pattern="^(asc|desc)$"),
        search: Optional[str] = None,
        item_status: Optional[str] = Query(None, alias="status"),
        db: AsyncSession = Depends(get_db),
        service: DynamicConfigService = Depends(get_config_service)
    ):
        query = ItemListQuery(page=page, limit=limit, sort=sort, order=order, search=search, status=item_status)
        result = await service.list_items(_key(key), collection, query)
        await db.commit()
        return api_response(result)

    @router.post(f"/{path}", name=f"add_{collection}", tags=tags, status_code=status.HTTP_201_CREATED)
    async def add_item(
        item: create_schema,
        request: Request,
        key: Optional[str] = Query(None),
        db: AsyncSession = Depends(get_db),
        service: DynamicConfigService = Depends(get_config_service),
        current_admin: User = Depends(get_current_admin)
    ):
        config = await service.add_item(_key(key), collection, item)
        item_id = item.to_document()[COLLECTION_KEYS[collection]]
        record_audit(db, current_admin, f"config.{info.slug}.added", config.key,
                     {"key": config.key, "itemId": item_id}, request)
        await db.commit()
        return api_response(config_to_dict(config), f"{info.label} added successfully")

    @router.put(f"/{path}/{{item_id}}", name=f"update_{collection}", tags=tags)
    async def update_item(
        item_id: str,
        update_data: update_schema,
        request: Request,
        key: Optional[str] = Query(None),
        db: AsyncSession = Depends(get_db),
        service: DynamicConfigService = Depends(get_config_service),
        current_admin: User = Depends(get_current_admin)
    ):
        config = await service.update_item(_key(key), collection, item_id, update_data)
        record_audit(db, current_admin, f"config.{info.slug}.updated", config.key,
                     {"key": config.key, "itemId": item_id, "changes": update_data.to_patch()}, request)
        await db.commit()
        return api_response(config_to_dict(config), f"{info.label} updated successfully")

    @router.delete(f"/{path}/{{item_id}}", name=f"remove_{collection}", tags=tags)
    async def remove_item(
        item_id: str,
        request: Request,
        key: Optional[str] = Query(None),
        db: AsyncSession = Depends(get_db),
        service: DynamicConfigService = Depends(get_config_service),
        current_admin: User = Depends(get_current_admin)
    ):
        version = (await service.get_config(_key(key))).version
        config = await service.remove_item(_key(key), collection, item_id)
        if config.version != version:
            record_audit(db, current_admin, f"config.{info.slug}.removed", config.key,
                         {"key": config.key, "itemId": item_id}, request)
        await db.commit()
        return api_response(config_to_dict(config), f"{info.label} removed successfully")


for _path, _collection in [
    ("education-levels", "education_levels"),
    ("subjects", "subjects"),
    ("grades", "grades"),
    ("cities", "cities"),
    ("districts", "districts"),
    ("provinces", "provinces"),
    ("profile-sections", "profile_sections"),
    ("profile-templates", "profile_templates"),
]:
    _register_collection_routes(_path, _collection)
