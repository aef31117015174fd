"""
Unit Tests for the Dynamic Profile Service
"""
import pytest

from app.core.exceptions import (
    FormValidationError,
    ProfileSectionNotFoundError,
    ProfileTemplateNotFoundError,
    TeacherProfileNotFoundError,
)
from app.db.seed_data import DEFAULT_PROFILE_LAYOUT
from app.services.dynamic_config_service import DynamicConfigService
from app.services.dynamic_profile_service import (
    DynamicProfileService,
    has_dynamic_data,
    layout_from_sections,
    legacy_section_data,
)


RATES_SECTION = {
    "id": "rates",
    "type": "pricing",
    "title": "Rates",
    "order": 1,
    "fields": [
        {"id": "hourlyRate", "type": "number", "label": "Hourly rate", "validation": {"required": True, "min": 500}},
        {"id": "currency", "type": "select", "label": "Currency", "validation": {"allowedValues": ["LKR", "USD"]}},
    ],
}

ABOUT_SECTION = {
    "id": "about",
    "type": "basic",
    "title": "About",
    "order": 2,
    "fields": [{"id": "headline", "type": "text", "label": "Headline"}],
}


@pytest.fixture
def service(db_session):
    return DynamicProfileService(db_session)


@pytest.fixture
def config_service(db_session):
    return DynamicConfigService(db_session)


async def add_template(config_service, template_id="starter", active=True):
    await config_service.add_profile_template("default", {
        "id": template_id,
        "name": "Starter",
        "active": active,
        "sections": [
            {"id": "about", "type": "basic", "title": "About", "order": 2},
            {"id": "rates", "type": "pricing", "title": "Rates", "order": 1, "config": {"columns": 2}},
        ],
    })


class TestLegacyProjection:
    """Test reading teachers that never used dynamic profiles"""

    @pytest.mark.asyncio
    async def test_legacy_buckets(self, teacher_profile):
        """Test legacy columns land in the five default sections"""
        data = legacy_section_data(teacher_profile)

        assert set(data) == {entry["id"] for entry in DEFAULT_PROFILE_LAYOUT}
        assert data["basic-info"]["firstName"] == teacher_profile.first_name
        assert data["education"]["subjects"] == ["MATHEMATICS"]
        assert data["education"]["educationLevel"] == "OL"
        assert data["experience"]["experience"] == 6
        assert data["pricing"] == {"hourlyRate": 2500, "monthlyFee": 8000, "groupClassPrice": 1500}
        assert data["contact"]["location"]["city"] == "Colombo"

    def test_layout_from_sections(self):
        """Test template sections become sorted layout entries without fields"""
        layout = layout_from_sections([ABOUT_SECTION, RATES_SECTION])

        assert [entry["id"] for entry in layout] == ["rates", "about"]
        assert set(layout[0]) == {"id", "type", "order", "visible", "config"}

    @pytest.mark.asyncio
    async def test_get_profile_projects_without_writing(self, service, teacher_profile, teacher_user):
        """Test the read path returns the projection and leaves the row alone"""
        result = await service.get_dynamic_profile(str(teacher_user.id))

        assert result["usesDynamicProfile"] is False
        assert result["dynamicProfile"]["lastUpdated"] is None
        assert result["dynamicProfile"]["sectionData"]["pricing"]["hourlyRate"] == 2500
        assert result["profileLayout"] == DEFAULT_PROFILE_LAYOUT
        assert result["teacher"]["userId"] == str(teacher_user.id)
        assert "educationLevels" in result["config"]

        assert teacher_profile.dynamic_profile is None
        assert teacher_profile.uses_dynamic_profile is False
        assert has_dynamic_data(teacher_profile) is False

    @pytest.mark.asyncio
    async def test_missing_profile(self, service, teacher_user):
        """Test a user without a profile row"""
        with pytest.raises(TeacherProfileNotFoundError) as exc_info:
            await service.get_dynamic_profile(str(teacher_user.id))

        assert exc_info.value.status_code == 404


class TestUpdateDynamicProfile:
    """Test section data and custom field updates"""

    @pytest.mark.asyncio
    async def test_section_update_keeps_other_sections(self, service, teacher_profile, teacher_user):
        """Test that writing pricing leaves the projected basic-info intact"""
        profile = await service.update_dynamic_profile(str(teacher_user.id), {
            "sectionData": {"pricing": {"hourlyRate": 3000}},
        })

        dynamic = profile.dynamic_profile
        assert profile.uses_dynamic_profile is True
        assert dynamic["sectionData"]["pricing"] == {"hourlyRate": 3000}
        assert dynamic["sectionData"]["basic-info"]["firstName"] == teacher_profile.first_name
        assert dynamic["lastUpdated"] is not None
        # Legacy columns are untouched
        assert teacher_profile.pricing["hourlyRate"] == 2500

    @pytest.mark.asyncio
    async def test_custom_fields_merge(self, service, teacher_profile, teacher_user):
        """Test custom fields are merged key by key"""
        user_id = str(teacher_user.id)
        await service.update_dynamic_profile(user_id, {"customFields": {"youtube": "@maths"}})
        profile = await service.update_dynamic_profile(user_id, {"customFields": {"website": "https://example.com"}})

        assert profile.dynamic_profile["customFields"] == {
            "youtube": "@maths",
            "website": "https://example.com",
        }

    @pytest.mark.asyncio
    async def test_catalog_section_is_validated(self, service, config_service, teacher_profile, teacher_user):
        """Test data for a catalog section must satisfy its field rules"""
        await config_service.add_profile_section("default", RATES_SECTION)

        with pytest.raises(FormValidationError) as exc_info:
            await service.update_dynamic_profile(str(teacher_user.id), {
                "sectionData": {"rates": {"hourlyRate": 100}},
            })

        errors = exc_info.value.details["errors"]
        assert errors[0]["field"] == "hourlyRate"
        assert exc_info.value.details["section_id"] == "rates"

    @pytest.mark.asyncio
    async def test_broken_stored_pattern_is_a_field_error(self, service, config_service, db_session,
                                                          teacher_profile, teacher_user):
        """Test a descriptor saved before patterns were checked still gives a 400"""
        config = await config_service.get_config("default")
        config.profile_sections = [{
            "id": "about", "type": "basic", "title": "About",
            "fields": [{"id": "code", "type": "text", "label": "Code", "validation": {"pattern": "["}}],
        }]
        await db_session.flush()

        with pytest.raises(FormValidationError) as exc_info:
            await service.update_dynamic_profile(str(teacher_user.id), {
                "sectionData": {"about": {"code": "x"}},
            })

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["errors"][0]["field"] == "code"

    @pytest.mark.asyncio
    async def test_valid_and_unknown_sections_stored(self, service, config_service, teacher_profile, teacher_user):
        """Test valid catalog data and data for unknown sections are both stored"""
        await config_service.add_profile_section("default", RATES_SECTION)

        profile = await service.update_dynamic_profile(str(teacher_user.id), {
            "sectionData": {
                "rates": {"hourlyRate": 1200, "currency": "LKR"},
                "notes": {"anything": ["goes", 1]},
            },
        })

        section_data = profile.dynamic_profile["sectionData"]
        assert section_data["rates"] == {"hourlyRate": 1200, "currency": "LKR"}
        assert section_data["notes"] == {"anything": ["goes", 1]}

    @pytest.mark.asyncio
    async def test_layout_in_update_is_sorted(self, service, teacher_profile, teacher_user):
        """Test a layout sent with the update replaces the stored one"""
        profile = await service.update_dynamic_profile(str(teacher_user.id), {
            "templateId": "custom",
            "profileLayout": [
                {"id": "contact", "type": "contact", "order": 2},
                {"id": "basic-info", "type": "basic", "order": 1},
            ],
        })

        assert [entry["id"] for entry in profile.profile_layout] == ["basic-info", "contact"]
        assert profile.dynamic_profile["templateId"] == "custom"


class TestEnableDisable:
    """Test turning dynamic profiles on and off"""

    @pytest.mark.asyncio
    async def test_enable_without_template(self, service, teacher_profile, teacher_user):
        """Test enabling seeds the default layout"""
        profile = await service.enable_dynamic_profile(str(teacher_user.id))

        assert profile.uses_dynamic_profile is True
        assert profile.profile_layout == DEFAULT_PROFILE_LAYOUT
        assert profile.dynamic_profile["sectionData"]["pricing"]["monthlyFee"] == 8000

    @pytest.mark.asyncio
    async def test_enable_with_template(self, service, config_service, teacher_profile, teacher_user):
        """Test enabling with a template copies its layout"""
        await add_template(config_service)

        profile = await service.enable_dynamic_profile(str(teacher_user.id), template_id="starter")

        assert [entry["id"] for entry in profile.profile_layout] == ["rates", "about"]
        assert profile.profile_layout[0]["config"] == {"columns": 2}
        assert profile.dynamic_profile["templateId"] == "starter"

    @pytest.mark.asyncio
    async def test_disable_keeps_data(self, service, teacher_profile, teacher_user):
        """Test disabling only clears the flag"""
        user_id = str(teacher_user.id)
        await service.update_dynamic_profile(user_id, {"customFields": {"youtube": "@maths"}})

        profile = await service.disable_dynamic_profile(user_id)

        assert profile.uses_dynamic_profile is False
        assert profile.dynamic_profile["customFields"] == {"youtube": "@maths"}


class TestTemplatesAndLayout:
    """Test template application and layout edits"""

    @pytest.mark.asyncio
    async def test_applied_template_is_a_snapshot(self, service, config_service, teacher_profile, teacher_user):
        """Test removing the template later does not touch the teacher's layout"""
        await add_template(config_service)
        user_id = str(teacher_user.id)

        profile = await service.apply_profile_template(user_id, "starter")
        layout = [dict(entry) for entry in profile.profile_layout]

        await config_service.remove_profile_template("default", "starter")
        result = await service.get_dynamic_profile(user_id)

        assert result["profileLayout"] == layout
        assert result["dynamicProfile"]["templateId"] == "starter"
        assert result["usesDynamicProfile"] is True

    @pytest.mark.asyncio
    async def test_unknown_or_inactive_template(self, service, config_service, teacher_profile, teacher_user):
        """Test both an unknown and an inactive template 404"""
        await add_template(config_service, "retired", active=False)

        with pytest.raises(ProfileTemplateNotFoundError):
            await service.apply_profile_template(str(teacher_user.id), "nope")
        with pytest.raises(ProfileTemplateNotFoundError):
            await service.get_profile_template("retired")

    @pytest.mark.asyncio
    async def test_layout_update(self, service, teacher_profile, teacher_user):
        """Test the layout is stored sorted and the flag is left as it was"""
        profile = await service.update_profile_layout(str(teacher_user.id), [
            {"id": "pricing", "type": "pricing", "order": 3, "visible": False},
            {"id": "basic-info", "type": "basic", "order": 0},
        ])

        assert [entry["id"] for entry in profile.profile_layout] == ["basic-info", "pricing"]
        assert profile.profile_layout[1]["visible"] is False
        assert profile.uses_dynamic_profile is False
        assert profile.dynamic_profile["lastUpdated"] is not None


class TestFormPlan:
    """Test render plans and section validation"""

    @pytest.mark.asyncio
    async def test_whole_catalog_without_layout(self, service, config_service, teacher_profile, teacher_user):
        """Test a teacher without a layout sees every visible catalog section"""
        await config_service.add_profile_section("default", RATES_SECTION)
        await config_service.add_profile_section("default", ABOUT_SECTION)

        plan = await service.get_form_plan(str(teacher_user.id))

        assert [s["id"] for s in plan] == ["rates", "about"]
        assert plan[0]["fields"][0]["control"] == "number"
        assert plan[0]["fields"][0]["required"] is True

    @pytest.mark.asyncio
    async def test_layout_places_sections(self, service, config_service, teacher_profile, teacher_user):
        """Test the teacher's layout orders and hides catalog sections"""
        await config_service.add_profile_section("default", RATES_SECTION)
        await config_service.add_profile_section("default", ABOUT_SECTION)
        user_id = str(teacher_user.id)
        await service.update_profile_layout(user_id, [
            {"id": "about", "type": "basic", "order": 0},
            {"id": "rates", "type": "pricing", "order": 1},
        ])

        plan = await service.get_form_plan(user_id)
        assert [s["id"] for s in plan] == ["about", "rates"]

        await service.update_profile_layout(user_id, [
            {"id": "about", "type": "basic", "order": 0, "visible": False},
            {"id": "rates", "type": "pricing", "order": 1},
        ])

        plan = await service.get_form_plan(user_id)
        assert [s["id"] for s in plan] == ["rates"]

    @pytest.mark.asyncio
    async def test_validate_section_data(self, service, config_service):
        """Test standalone validation of one section"""
        await config_service.add_profile_section("default", RATES_SECTION)

        cleaned = await service.validate_section_data("rates", {"hourlyRate": 900})
        assert cleaned == {"hourlyRate": 900}

        with pytest.raises(FormValidationError):
            await service.validate_section_data("rates", {"hourlyRate": 900, "currency": "EUR"})
        with pytest.raises(ProfileSectionNotFoundError):
            await service.validate_section_data("ghost", {})


class TestMigration:
    """Test migration of legacy profiles"""

    @pytest.mark.asyncio
    async def test_migrate_is_idempotent(self, service, teacher_profile):
        """Test the first run migrates the teacher and the second finds nothing"""
        assert await service.migrate_legacy_profiles() == (1, 0)

        assert teacher_profile.uses_dynamic_profile is True
        assert teacher_profile.profile_layout == DEFAULT_PROFILE_LAYOUT
        assert teacher_profile.dynamic_profile["sectionData"]["pricing"]["hourlyRate"] == 2500
        assert teacher_profile.dynamic_profile["lastUpdated"] is not None

        assert await service.migrate_legacy_profiles() == (0, 0)
