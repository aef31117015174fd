# Pydantic schemas
from app.schemas.common import api_response
from app.schemas.dynamic_config import (
    FieldOption,
    FieldValidation,
    DynamicField,
    DynamicFieldUpdate,
    ProfileSection,
    ProfileSectionUpdate,
    ProfileTemplate,
    ProfileTemplateUpdate,
    SectionOrder,
    EducationLevel,
    EducationLevelUpdate,
    Subject,
    SubjectUpdate,
    Grade,
    GradeUpdate,
    LocationItem,
    LocationItemUpdate,
    ConfigSettings,
    GeneralSettings,
    GeneralSettingsUpdate,
    BrandingSettings,
    BrandingSettingsUpdate,
    DynamicConfigUpdate,
)
from app.schemas.dynamic_profile import (
    SectionLayoutEntry,
    DynamicProfileUpdate,
    EnableDynamicProfileRequest,
    SectionValidationRequest,
)
