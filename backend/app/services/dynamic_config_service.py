"""
Dynamic Configuration Service

Reads and mutates the admin-editable configuration document: taxonomies,
location lists, the profile section/template catalog and the settings
blocks. Every mutation is a read-modify-write of one ``DynamicConfig`` row;
the row's version counter turns a stale write into ConcurrentUpdateError
instead of a lost update.
"""
import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.exceptions import (
    ConcurrentUpdateError,
    ConfigLimitExceededError,
    ConfigNotFoundError,
    DuplicateItemError,
    ProfileSectionNotFoundError,
    ProfileTemplateNotFoundError,
    SectionFieldNotFoundError,
    TaxonomyItemNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger
from app.db.seed_data import build_default_config
from app.models.dynamic_config import COLLECTION_KEYS, DynamicConfig
from app.schemas.dynamic_config import (
    BrandingSettings,
    BrandingSettingsUpdate,
    ConfigSettings,
    DynamicConfigUpdate,
    DynamicField,
    DynamicFieldUpdate,
    EducationLevel,
    EducationLevelUpdate,
    GeneralSettings,
    GeneralSettingsUpdate,
    Grade,
    GradeUpdate,
    LocationItem,
    LocationItemUpdate,
    ProfileSection,
    ProfileSectionUpdate,
    ProfileTemplate,
    ProfileTemplateUpdate,
    SectionOrder,
    Subject,
    SubjectUpdate,
)
from app.utils.pagination import ItemListQuery, paginate_items


Payload = Union[BaseModel, Dict[str, Any]]


@dataclass(frozen=True)
class CollectionInfo:
    """How one JSON array on the document is validated, named and audited"""
    label: str
    slug: str
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    status_flag: str = "active"
    title_key: str = "name"


COLLECTIONS: Dict[str, CollectionInfo] = {
    "education_levels": CollectionInfo("Education level", "education_level", EducationLevel, EducationLevelUpdate),
    "subjects": CollectionInfo("Subject", "subject", Subject, SubjectUpdate),
    "grades": CollectionInfo("Grade", "grade", Grade, GradeUpdate),
    "cities": CollectionInfo("City", "city", LocationItem, LocationItemUpdate),
    "districts": CollectionInfo("District", "district", LocationItem, LocationItemUpdate),
    "provinces": CollectionInfo("Province", "province", LocationItem, LocationItemUpdate),
    "profile_sections": CollectionInfo(
        "Profile section", "profile_section", ProfileSection, ProfileSectionUpdate,
        status_flag="visible", title_key="title",
    ),
    "profile_templates": CollectionInfo("Profile template", "profile_template", ProfileTemplate, ProfileTemplateUpdate),
}


def coerce_payload(schema: Type[BaseModel], data: Payload) -> BaseModel:
    """Accept either a validated model or a raw dict from scripts and tests"""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, exclude_unset=True)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or None
        raise ValidationError(f"Invalid {schema.__name__}: {first['msg']}", field=field)


def _by_order(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # sorted() is stable, so equal orders keep array position
    return sorted(items, key=lambda item: item.get("order", 1))


def _public_section(section: Dict[str, Any]) -> Dict[str, Any]:
    projected = dict(section)
    projected["fields"] = _by_order(f for f in section.get("fields") or [] if f.get("visible", True))
    return projected


def config_settings(config: DynamicConfig) -> ConfigSettings:
    return ConfigSettings.model_validate(config.settings or {})


def config_to_dict(config: DynamicConfig) -> Dict[str, Any]:
    """Full document in its wire (camelCase) form"""
    return {
        "id": str(config.id),
        "key": config.key,
        "name": config.name,
        "description": config.description,
        "active": config.active,
        "educationLevels": config.education_levels or [],
        "subjects": config.subjects or [],
        "grades": config.grades or [],
        "cities": config.cities or [],
        "districts": config.districts or [],
        "provinces": config.provinces or [],
        "profileSections": config.profile_sections or [],
        "profileTemplates": config.profile_templates or [],
        "settings": config_settings(config).to_document(),
        "generalSettings": config.general_settings or GeneralSettings().to_document(),
        "brandingSettings": config.branding_settings or BrandingSettings().to_document(),
        "version": config.version,
        "createdAt": config.created_at,
        "updatedAt": config.updated_at,
    }


class DynamicConfigService:
    """Configuration document store, one document per key"""

    def __init__(self, db: AsyncSession, actor_id: Optional[str] = None):
        self.db = db
        self.actor_id = actor_id

    # ==================== Document ====================

    async def _find(self, key: str, active_only: bool = True) -> Optional[DynamicConfig]:
        query = select(DynamicConfig).where(DynamicConfig.key == key)
        if active_only:
            query = query.where(DynamicConfig.active == True)  # noqa: E712
        return await self.db.scalar(query)

    async def _create_default(self, key: str) -> DynamicConfig:
        """
        Insert the default document inside a savepoint. When another caller
        inserted the same key first, the unique violation is swallowed and
        the existing row returned, so concurrent first reads yield one row.
        """
        try:
            async with self.db.begin_nested():
                config = DynamicConfig(**build_default_config(key), created_by=self.actor_id)
                self.db.add(config)
        except IntegrityError:
            logger.info(f"Default configuration '{key}' created concurrently, using existing row")
            existing = await self._find(key, active_only=False)
            if existing is None:
                raise
            return existing

        logger.log_config_change(key, "created_default")
        return config

    async def get_config(self, key: Optional[str] = None) -> DynamicConfig:
        """Active document for ``key``, creating the default one on first use"""
        key = key or settings.DEFAULT_CONFIG_KEY
        config = await self._find(key)
        if config is None:
            config = await self._create_default(key)
        return config

    async def _save(self, config: DynamicConfig, operation: str, item_id: Optional[str] = None) -> DynamicConfig:
        key = config.key
        if self.actor_id:
            config.updated_by = self.actor_id
        try:
            await self.db.flush()
        except StaleDataError:
            await self.db.rollback()
            raise ConcurrentUpdateError("Configuration", key)
        logger.log_config_change(key, operation, item_id)
        return config

    async def update_config(self, key: str, data: Payload) -> DynamicConfig:
        """Replace the provided top-level fields; the document must already exist"""
        config = await self._find(key, active_only=False)
        if config is None:
            raise ConfigNotFoundError(key)

        patch = coerce_payload(DynamicConfigUpdate, data)
        for field_name in patch.model_fields_set:
            value = getattr(patch, field_name)
            if value is None and (field_name in COLLECTION_KEYS or field_name in ("name", "active", "settings")):
                continue
            if field_name in COLLECTION_KEYS:
                value = [item.to_document() for item in value]
            elif isinstance(value, BaseModel):
                value = value.to_document()
            setattr(config, field_name, value)

        return await self._save(config, "updated", ", ".join(sorted(patch.model_fields_set)) or None)

    async def update_general_settings(self, key: str, data: Payload) -> DynamicConfig:
        config = await self.get_config(key)
        patch = coerce_payload(GeneralSettingsUpdate, data).to_patch()
        config.general_settings = {**(config.general_settings or GeneralSettings().to_document()), **patch}
        return await self._save(config, "general_settings_updated")

    async def update_branding_settings(self, key: str, data: Payload) -> DynamicConfig:
        config = await self.get_config(key)
        patch = coerce_payload(BrandingSettingsUpdate, data).to_patch()
        config.branding_settings = {**(config.branding_settings or BrandingSettings().to_document()), **patch}
        return await self._save(config, "branding_settings_updated")

    # ==================== Generic item CRUD ====================

    def _items(self, config: DynamicConfig, collection: str) -> List[Dict[str, Any]]:
        """Detached copy of a collection, safe to modify and assign back"""
        return copy.deepcopy(list(getattr(config, collection) or []))

    def _check_add_limits(self, config: DynamicConfig, collection: str, item: Dict[str, Any]) -> None:
        caps = config_settings(config)
        if collection == "education_levels" and len(config.education_levels or []) >= caps.max_education_levels:
            raise ConfigLimitExceededError(
                f"Maximum of {caps.max_education_levels} education levels reached",
                setting="maxEducationLevels",
            )
        if collection == "profile_sections":
            if item.get("type") == "custom" and not caps.allow_custom_sections:
                raise ConfigLimitExceededError("Custom sections are disabled", setting="allowCustomSections")
            if len(item.get("fields") or []) > caps.max_custom_fields:
                raise ConfigLimitExceededError(
                    f"A section may hold at most {caps.max_custom_fields} fields",
                    setting="maxCustomFields",
                )

    def _not_found(self, collection: str, natural_key: str) -> Exception:
        if collection == "profile_sections":
            return ProfileSectionNotFoundError(natural_key)
        if collection == "profile_templates":
            return ProfileTemplateNotFoundError(natural_key)
        return TaxonomyItemNotFoundError(COLLECTIONS[collection].label, natural_key)

    async def add_item(self, key: str, collection: str, data: Payload) -> DynamicConfig:
        info = COLLECTIONS[collection]
        key_name = COLLECTION_KEYS[collection]
        config = await self.get_config(key)

        item = coerce_payload(info.create_schema, data).to_document()
        if config.find_item(collection, item[key_name]) is not None:
            raise DuplicateItemError(info.label, item[key_name], label=key_name)
        self._check_add_limits(config, collection, item)

        setattr(config, collection, self._items(config, collection) + [item])
        return await self._save(config, f"{info.slug}_added", item[key_name])

    async def update_item(self, key: str, collection: str, natural_key: str, data: Payload) -> DynamicConfig:
        info = COLLECTIONS[collection]
        key_name = COLLECTION_KEYS[collection]
        config = await self.get_config(key)

        items = self._items(config, collection)
        index = next((i for i, item in enumerate(items) if item.get(key_name) == natural_key), None)
        if index is None:
            raise self._not_found(collection, natural_key)

        patch = coerce_payload(info.update_schema, data).to_patch()
        new_key = patch.get(key_name)
        if new_key is None:
            patch.pop(key_name, None)
        elif new_key != natural_key and config.find_item(collection, new_key) is not None:
            raise DuplicateItemError(info.label, new_key, label=key_name)
        if collection == "profile_sections" and patch.get("type") == "custom":
            if not config_settings(config).allow_custom_sections:
                raise ConfigLimitExceededError("Custom sections are disabled", setting="allowCustomSections")

        items[index] = {**items[index], **patch}
        setattr(config, collection, items)
        return await self._save(config, f"{info.slug}_updated", natural_key)

    async def remove_item(self, key: str, collection: str, natural_key: str) -> DynamicConfig:
        """Filter the item out; removing an absent item succeeds without change"""
        info = COLLECTIONS[collection]
        key_name = COLLECTION_KEYS[collection]
        config = await self.get_config(key)

        items = self._items(config, collection)
        remaining = [item for item in items if item.get(key_name) != natural_key]
        if len(remaining) == len(items):
            logger.debug(f"{info.label} '{natural_key}' not in '{config.key}', nothing to remove")
            return config

        setattr(config, collection, remaining)
        return await self._save(config, f"{info.slug}_removed", natural_key)

    async def list_items(self, key: str, collection: str, query: Optional[ItemListQuery] = None) -> Dict[str, Any]:
        """One page of a collection with search, status filter and sorting"""
        info = COLLECTIONS[collection]
        key_name = COLLECTION_KEYS[collection]
        query = query or ItemListQuery()
        config = await self.get_config(key)

        items = list(getattr(config, collection) or [])

        if query.search:
            term = query.search.lower()
            items = [
                item for item in items
                if term in str(item.get(key_name, "")).lower() or term in str(item.get(info.title_key, "")).lower()
            ]

        if query.status:
            wanted = query.status in ("active", "visible")
            items = [item for item in items if bool(item.get(info.status_flag, True)) == wanted]

        sort_key = {"code": key_name, "id": key_name, "name": info.title_key, "title": info.title_key}.get(
            query.sort, "order"
        )
        if sort_key == "order":
            items.sort(key=lambda item: item.get("order", 0), reverse=query.order == "desc")
        else:
            items.sort(key=lambda item: str(item.get(sort_key, "")).lower(), reverse=query.order == "desc")

        return paginate_items(items, query)

    # ==================== Education levels ====================

    async def add_education_level(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "education_levels", data)

    async def update_education_level(self, key: str, code: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "education_levels", code, data)

    async def remove_education_level(self, key: str, code: str) -> DynamicConfig:
        return await self.remove_item(key, "education_levels", code)

    # ==================== Subjects ====================

    async def add_subject(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "subjects", data)

    async def update_subject(self, key: str, code: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "subjects", code, data)

    async def remove_subject(self, key: str, code: str) -> DynamicConfig:
        return await self.remove_item(key, "subjects", code)

    # ==================== Grades ====================

    async def add_grade(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "grades", data)

    async def update_grade(self, key: str, code: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "grades", code, data)

    async def remove_grade(self, key: str, code: str) -> DynamicConfig:
        return await self.remove_item(key, "grades", code)

    # ==================== Locations ====================

    async def add_city(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "cities", data)

    async def update_city(self, key: str, code: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "cities", code, data)

    async def remove_city(self, key: str, code: str) -> DynamicConfig:
        return await self.remove_item(key, "cities", code)

    async def add_district(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "districts", data)

    async def update_district(self, key: str, code: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "districts", code, data)

    async def remove_district(self, key: str, code: str) -> DynamicConfig:
        return await self.remove_item(key, "districts", code)

    async def add_province(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "provinces", data)

    async def update_province(self, key: str, code: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "provinces", code, data)

    async def remove_province(self, key: str, code: str) -> DynamicConfig:
        return await self.remove_item(key, "provinces", code)

    # ==================== Profile sections ====================

    async def add_profile_section(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "profile_sections", data)

    async def update_profile_section(self, key: str, section_id: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "profile_sections", section_id, data)

    async def remove_profile_section(self, key: str, section_id: str) -> DynamicConfig:
        return await self.remove_item(key, "profile_sections", section_id)

    async def reorder_profile_sections(self, key: str, orders: List[Payload]) -> DynamicConfig:
        """
        Give each listed section its new order, ignoring ids that are not in
        the catalog, then stable-sort the whole array. Applying the same list
        twice gives the same result.
        """
        config = await self.get_config(key)
        new_orders = {entry.id: entry.order for entry in (coerce_payload(SectionOrder, o) for o in orders)}

        sections = self._items(config, "profile_sections")
        for section in sections:
            if section.get("id") in new_orders:
                section["order"] = new_orders[section["id"]]

        config.profile_sections = _by_order(sections)
        return await self._save(config, "profile_sections_reordered")

    # ==================== Section fields ====================

    def _section_index(self, sections: List[Dict[str, Any]], section_id: str) -> int:
        for i, section in enumerate(sections):
            if section.get("id") == section_id:
                return i
        raise ProfileSectionNotFoundError(section_id)

    async def add_section_field(self, key: str, section_id: str, data: Payload) -> DynamicConfig:
        config = await self.get_config(key)
        sections = self._items(config, "profile_sections")
        section = sections[self._section_index(sections, section_id)]

        field = coerce_payload(DynamicField, data).to_document()
        fields = section.get("fields") or []
        if any(f.get("id") == field["id"] for f in fields):
            raise DuplicateItemError("Field", field["id"], label="id")
        cap = config_settings(config).max_custom_fields
        if len(fields) >= cap:
            raise ConfigLimitExceededError(f"A section may hold at most {cap} fields", setting="maxCustomFields")

        section["fields"] = fields + [field]
        config.profile_sections = sections
        return await self._save(config, "section_field_added", f"{section_id}/{field['id']}")

    async def update_section_field(self, key: str, section_id: str, field_id: str, data: Payload) -> DynamicConfig:
        config = await self.get_config(key)
        sections = self._items(config, "profile_sections")
        section = sections[self._section_index(sections, section_id)]

        fields = section.get("fields") or []
        index = next((i for i, f in enumerate(fields) if f.get("id") == field_id), None)
        if index is None:
            raise SectionFieldNotFoundError(field_id, section_id)

        fields[index] = {**fields[index], **coerce_payload(DynamicFieldUpdate, data).to_patch()}
        section["fields"] = fields
        config.profile_sections = sections
        return await self._save(config, "section_field_updated", f"{section_id}/{field_id}")

    async def remove_section_field(self, key: str, section_id: str, field_id: str) -> DynamicConfig:
        config = await self.get_config(key)
        sections = self._items(config, "profile_sections")
        section = sections[self._section_index(sections, section_id)]

        fields = section.get("fields") or []
        remaining = [f for f in fields if f.get("id") != field_id]
        if len(remaining) == len(fields):
            return config

        section["fields"] = remaining
        config.profile_sections = sections
        return await self._save(config, "section_field_removed", f"{section_id}/{field_id}")

    # ==================== Profile templates ====================

    async def add_profile_template(self, key: str, data: Payload) -> DynamicConfig:
        return await self.add_item(key, "profile_templates", data)

    async def update_profile_template(self, key: str, template_id: str, data: Payload) -> DynamicConfig:
        return await self.update_item(key, "profile_templates", template_id, data)

    async def remove_profile_template(self, key: str, template_id: str) -> DynamicConfig:
        return await self.remove_item(key, "profile_templates", template_id)

    # ==================== Public projection ====================

    async def get_public_config(self, key: Optional[str] = None) -> Dict[str, Any]:
        """Only active taxonomy items, visible sections and fields, active templates"""
        config = await self.get_config(key)

        def active(collection: str) -> List[Dict[str, Any]]:
            return _by_order(item for item in getattr(config, collection) or [] if item.get("active", True))

        return {
            "educationLevels": active("education_levels"),
            "subjects": active("subjects"),
            "grades": active("grades"),
            "cities": active("cities"),
            "districts": active("districts"),
            "provinces": active("provinces"),
            "profileSections": [
                _public_section(section)
                for section in _by_order(s for s in config.profile_sections or [] if s.get("visible", True))
            ],
            "profileTemplates": active("profile_templates"),
            "settings": config_settings(config).to_document(),
            "generalSettings": config.general_settings or GeneralSettings().to_document(),
            "brandingSettings": config.branding_settings or BrandingSettings().to_document(),
        }
