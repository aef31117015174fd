"""
Dynamic Profile Service

Per-teacher dynamic profile: section data keyed by section id, free-form
custom fields, the teacher's section layout and the template it came from.

Teachers whose profile predates dynamic profiles are read through a
projection of their legacy columns into the five default sections, so
clients only ever deal with one shape.
"""
import copy
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    ConcurrentUpdateError,
    ProfileSectionNotFoundError,
    ProfileTemplateNotFoundError,
    TeacherProfileNotFoundError,
)
from app.core.logging_config import logger
from app.db.seed_data import default_profile_layout
from app.models.teacher_profile import TeacherProfile
from app.schemas.dynamic_profile import DynamicProfileUpdate, SectionLayoutEntry
from app.services.dynamic_config_service import DynamicConfigService, coerce_payload
from app.services.form_schema import build_render_plan, validate_form_data


def legacy_section_data(profile: TeacherProfile) -> Dict[str, Any]:
    """Legacy profile columns grouped into the default section buckets"""
    pricing = profile.pricing or {}
    return {
        "basic-info": {
            "firstName": profile.first_name,
            "lastName": profile.last_name,
            "tagline": profile.tagline,
            "bio": profile.bio,
            "image": profile.image,
        },
        "education": {
            "educationLevels": profile.education_levels or [],
            "subjects": profile.subjects or [],
            "grades": profile.grades or [],
            "educationLevel": profile.education_level,
        },
        "experience": {
            "experience": profile.experience,
            "experienceLevel": profile.experience_level,
            "qualifications": profile.qualifications,
            "teachingModes": profile.teaching_modes,
        },
        "pricing": {
            "hourlyRate": pricing.get("hourlyRate"),
            "monthlyFee": pricing.get("monthlyFee"),
            "groupClassPrice": pricing.get("groupClassPrice"),
        },
        "contact": {
            "location": profile.location,
            "contact": profile.contact,
            "languages": profile.languages,
            "onlinePlatforms": profile.online_platforms,
        },
    }


def has_dynamic_data(profile: TeacherProfile) -> bool:
    dynamic = profile.dynamic_profile or {}
    return bool(dynamic.get("sectionData") or dynamic.get("customFields") or dynamic.get("lastUpdated"))


def teacher_to_dict(profile: TeacherProfile) -> Dict[str, Any]:
    return {
        "id": str(profile.id),
        "userId": str(profile.user_id),
        "status": profile.status.value if profile.status else None,
        "firstName": profile.first_name,
        "lastName": profile.last_name,
        "tagline": profile.tagline,
        "bio": profile.bio,
        "image": profile.image,
        "subjects": profile.subjects or [],
        "grades": profile.grades or [],
        "educationLevel": profile.education_level,
        "experience": profile.experience,
        "usesDynamicProfile": profile.uses_dynamic_profile,
        "createdAt": profile.created_at,
        "updatedAt": profile.updated_at,
    }


def layout_from_sections(sections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Section placement only; field definitions are not copied"""
    entries = [
        {
            "id": section["id"],
            "type": section.get("type", "custom"),
            "order": section.get("order", 0),
            "visible": section.get("visible", True),
            "config": copy.deepcopy(section.get("config") or {}),
        }
        for section in sections
    ]
    return sorted(entries, key=lambda entry: entry["order"])


def _now() -> str:
    return datetime.utcnow().isoformat()


class DynamicProfileService:
    """Reads and writes teachers' dynamic profiles against the public catalog"""

    def __init__(self, db: AsyncSession, config_key: Optional[str] = None):
        self.db = db
        self.config_key = config_key
        self.config_service = DynamicConfigService(db)

    async def _get_profile(self, user_id: str) -> TeacherProfile:
        profile = await self.db.scalar(select(TeacherProfile).where(TeacherProfile.user_id == user_id))
        if profile is None:
            raise TeacherProfileNotFoundError(str(user_id))
        return profile

    def _current_dynamic(self, profile: TeacherProfile) -> Dict[str, Any]:
        """Copy of the stored dynamic data, or the legacy projection when there is none"""
        if has_dynamic_data(profile):
            dynamic = copy.deepcopy(profile.dynamic_profile)
            dynamic.setdefault("sectionData", {})
            dynamic.setdefault("customFields", {})
            return dynamic

        dynamic = {
            "sectionData": legacy_section_data(profile),
            "customFields": {},
            "lastUpdated": None,
        }
        template_id = (profile.dynamic_profile or {}).get("templateId")
        if template_id:
            dynamic["templateId"] = template_id
        return dynamic

    async def _save(self, profile: TeacherProfile, operation: str) -> TeacherProfile:
        user_id = str(profile.user_id)
        try:
            await self.db.flush()
        except StaleDataError:
            await self.db.rollback()
            raise ConcurrentUpdateError("Teacher profile", user_id)
        logger.log_profile_change(user_id, operation)
        return profile

    async def _catalog_sections(self) -> List[Dict[str, Any]]:
        public = await self.config_service.get_public_config(self.config_key)
        return public["profileSections"]

    def profile_view(self, profile: TeacherProfile) -> Dict[str, Any]:
        return {
            "usesDynamicProfile": profile.uses_dynamic_profile,
            "dynamicProfile": self._current_dynamic(profile),
            "profileLayout": profile.profile_layout or default_profile_layout(),
        }

    # ==================== Reads ====================

    async def get_dynamic_profile_config(self) -> Dict[str, Any]:
        return await self.config_service.get_public_config(self.config_key)

    async def get_dynamic_profile(self, user_id: str) -> Dict[str, Any]:
        """Teacher, public config and dynamic profile; never writes the profile"""
        profile = await self._get_profile(user_id)
        config = await self.config_service.get_public_config(self.config_key)
        return {
            "teacher": teacher_to_dict(profile),
            "config": config,
            **self.profile_view(profile),
        }

    async def get_profile_template(self, template_id: str) -> Dict[str, Any]:
        config = await self.config_service.get_config(self.config_key)
        template = config.find_item("profile_templates", template_id)
        if template is None or not template.get("active", True):
            raise ProfileTemplateNotFoundError(template_id)
        return copy.deepcopy(template)

    async def get_form_plan(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Render plan for the teacher's form. Catalog sections placed in the
        teacher's layout take the layout's order and visibility; when the
        layout names none of them the whole public catalog is used.
        """
        profile = await self._get_profile(user_id)
        sections = await self._catalog_sections()

        placement = {entry["id"]: entry for entry in profile.profile_layout or []}
        placed = [
            {
                **section,
                "order": placement[section["id"]].get("order", section.get("order", 1)),
                "visible": placement[section["id"]].get("visible", True),
            }
            for section in sections
            if section["id"] in placement
        ]
        return build_render_plan(placed or sections)

    async def validate_section_data(self, section_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate one section's payload against its catalog definition"""
        sections = await self._catalog_sections()
        section = next((s for s in sections if s["id"] == section_id), None)
        if section is None:
            raise ProfileSectionNotFoundError(section_id)
        return validate_form_data([section], data, section_id=section_id)

    # ==================== Writes ====================

    async def _validated_section_data(self, section_data: Dict[str, Any]) -> Dict[str, Any]:
        """Catalog sections are validated and cleaned; unknown section ids pass as-is"""
        catalog = {s["id"]: s for s in await self._catalog_sections()}
        cleaned = {}
        for section_id, data in section_data.items():
            if section_id in catalog and isinstance(data, dict):
                cleaned[section_id] = validate_form_data([catalog[section_id]], data, section_id=section_id)
            else:
                cleaned[section_id] = data
        return cleaned

    async def update_dynamic_profile(self, user_id: str, data) -> TeacherProfile:
        """
        Merge section data and custom fields per top-level key. A section id
        sent here replaces that section's stored value; other sections are
        left alone. Enables the dynamic profile on first write.
        """
        update = coerce_payload(DynamicProfileUpdate, data)
        profile = await self._get_profile(user_id)
        dynamic = self._current_dynamic(profile)

        if update.section_data:
            section_data = await self._validated_section_data(update.section_data)
            dynamic["sectionData"] = {**dynamic["sectionData"], **section_data}
        if update.custom_fields:
            dynamic["customFields"] = {**dynamic["customFields"], **update.custom_fields}
        if update.template_id is not None:
            dynamic["templateId"] = update.template_id
        if update.profile_layout is not None:
            profile.profile_layout = sorted(
                (entry.to_document() for entry in update.profile_layout), key=lambda entry: entry["order"]
            )

        dynamic["lastUpdated"] = _now()
        profile.dynamic_profile = dynamic
        profile.uses_dynamic_profile = True
        return await self._save(profile, "updated")

    async def enable_dynamic_profile(self, user_id: str, template_id: Optional[str] = None) -> TeacherProfile:
        profile = await self._get_profile(user_id)
        dynamic = self._current_dynamic(profile)

        if template_id:
            template = await self.get_profile_template(template_id)
            profile.profile_layout = layout_from_sections(template.get("sections") or [])
            dynamic["templateId"] = template_id
        elif not profile.profile_layout:
            profile.profile_layout = default_profile_layout()

        dynamic["lastUpdated"] = _now()
        profile.dynamic_profile = dynamic
        profile.uses_dynamic_profile = True
        return await self._save(profile, "enabled")

    async def disable_dynamic_profile(self, user_id: str) -> TeacherProfile:
        """Turn the flag off; stored data and layout are kept"""
        profile = await self._get_profile(user_id)
        profile.uses_dynamic_profile = False
        return await self._save(profile, "disabled")

    async def update_profile_layout(self, user_id: str, layout: List[Any]) -> TeacherProfile:
        entries = [coerce_payload(SectionLayoutEntry, entry).to_document() for entry in layout]
        profile = await self._get_profile(user_id)

        dynamic = self._current_dynamic(profile)
        dynamic["lastUpdated"] = _now()
        profile.profile_layout = sorted(entries, key=lambda entry: entry["order"])
        profile.dynamic_profile = dynamic
        return await self._save(profile, "layout_updated")

    async def apply_profile_template(self, user_id: str, template_id: str) -> TeacherProfile:
        """
        Copy the template's section placement into the teacher's layout. The
        copy is a snapshot: later catalog edits do not reach this teacher.
        """
        template = await self.get_profile_template(template_id)
        profile = await self._get_profile(user_id)

        dynamic = self._current_dynamic(profile)
        dynamic["templateId"] = template_id
        dynamic["lastUpdated"] = _now()

        profile.profile_layout = layout_from_sections(template.get("sections") or [])
        profile.dynamic_profile = dynamic
        profile.uses_dynamic_profile = True
        return await self._save(profile, f"template_applied:{template_id}")

    # ==================== Migration ====================

    async def migrate_legacy_profiles(self) -> Tuple[int, int]:
        """
        Convert every teacher not yet on dynamic profiles. Each profile is
        written in its own savepoint so one bad row does not stop the run.
        Returns ``(migrated, failed)``.
        """
        await self.config_service.get_config(self.config_key)

        result = await self.db.execute(
            select(TeacherProfile).where(TeacherProfile.uses_dynamic_profile == False)  # noqa: E712
        )
        profiles = result.scalars().all()
        logger.info(f"Found {len(profiles)} teacher profiles to migrate")

        migrated = 0
        failed = 0
        for profile in profiles:
            user_id = str(profile.user_id)
            try:
                async with self.db.begin_nested():
                    dynamic = self._current_dynamic(profile)
                    dynamic["lastUpdated"] = _now()
                    profile.dynamic_profile = dynamic
                    if not profile.profile_layout:
                        profile.profile_layout = default_profile_layout()
                    profile.uses_dynamic_profile = True
            except SQLAlchemyError as e:
                failed += 1
                logger.log_error_with_context(e, context="migrate_legacy_profiles", teacher_user_id=user_id)
                continue
            migrated += 1
            logger.log_profile_change(user_id, "migrated")

        logger.info(f"Migration finished: {migrated} migrated, {failed} failed")
        return migrated, failed
