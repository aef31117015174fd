"""
Schemas for the dynamic configuration document.

Payloads use camelCase on the wire (``minLength``, ``isDefault``,
``profileSections``) and accept snake_case names too. Items are stored in
the database exactly as ``model_dump(by_alias=True)`` produces them.
"""
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


FieldType = Literal[
    "text", "textarea", "select", "multiselect", "checkbox", "radio",
    "number", "email", "phone", "url", "date", "file", "rating",
]
FieldSize = Literal["small", "medium", "large"]
SectionType = Literal["basic", "education", "experience", "pricing", "contact", "availability", "custom"]
SectionSize = Literal["small", "medium", "large", "full"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Dict as stored in the configuration document"""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_patch(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent; nested items are stored whole"""
        patch = self.model_dump(by_alias=True, exclude_unset=True)
        for name in self.model_fields_set:
            value = getattr(self, name)
            alias = type(self).model_fields[name].alias or name
            if isinstance(value, list) and any(isinstance(v, CamelModel) for v in value):
                patch[alias] = [v.to_document() if isinstance(v, CamelModel) else v for v in value]
        return patch


def _unique_ids(items: List[Any], what: str) -> List[Any]:
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"duplicate {what} id '{item.id}'")
        seen.add(item.id)
    return items


# ==================== Field descriptors ====================

class FieldOption(CamelModel):
    value: str
    label: str
    description: Optional[str] = None
    is_default: bool = False


class FieldValidation(CamelModel):
    required: Optional[bool] = None
    min_length: Optional[int] = Field(None, ge=0)
    max_length: Optional[int] = Field(None, ge=0)
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    allowed_values: Optional[List[str]] = None

    @field_validator("pattern")
    @classmethod
    def pattern_compiles(cls, v, info: ValidationInfo):
        # Stored descriptors are read back as-is; a broken pattern fails per value instead
        if v is not None and not (info.context or {}).get("stored"):
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid regular expression: {e}")
        return v


class DynamicField(CamelModel):
    id: str = Field(..., min_length=1)
    type: FieldType
    label: str
    placeholder: Optional[str] = None
    description: Optional[str] = None
    visible: bool = True
    order: int = 1
    validation: Optional[FieldValidation] = None
    options: Optional[List[FieldOption]] = None
    default_value: Optional[Any] = None
    size: FieldSize = "medium"
    multiline: bool = False
    searchable: bool = False


class DynamicFieldUpdate(CamelModel):
    type: Optional[FieldType] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    description: Optional[str] = None
    visible: Optional[bool] = None
    order: Optional[int] = None
    validation: Optional[FieldValidation] = None
    options: Optional[List[FieldOption]] = None
    default_value: Optional[Any] = None
    size: Optional[FieldSize] = None
    multiline: Optional[bool] = None
    searchable: Optional[bool] = None


# ==================== Sections and templates ====================

class ProfileSection(CamelModel):
    id: str = Field(..., min_length=1)
    type: SectionType
    title: str
    description: Optional[str] = None
    visible: bool = True
    order: int = 1
    required: bool = False
    size: SectionSize = "medium"
    fields: List[DynamicField] = []
    config: Optional[Dict[str, Any]] = None

    @field_validator("fields")
    @classmethod
    def field_ids_unique(cls, v):
        return _unique_ids(v, "field")


class ProfileSectionUpdate(CamelModel):
    type: Optional[SectionType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    visible: Optional[bool] = None
    order: Optional[int] = None
    required: Optional[bool] = None
    size: Optional[SectionSize] = None
    fields: Optional[List[DynamicField]] = None
    config: Optional[Dict[str, Any]] = None

    @field_validator("fields")
    @classmethod
    def field_ids_unique(cls, v):
        return _unique_ids(v, "field") if v is not None else v


class ProfileTemplate(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    description: Optional[str] = None
    tags: List[str] = []
    active: bool = True
    order: int = 1
    sections: List[ProfileSection] = []
    is_default: bool = False

    @field_validator("sections")
    @classmethod
    def section_ids_unique(cls, v):
        return _unique_ids(v, "section")


class ProfileTemplateUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    active: Optional[bool] = None
    order: Optional[int] = None
    sections: Optional[List[ProfileSection]] = None
    is_default: Optional[bool] = None

    @field_validator("sections")
    @classmethod
    def section_ids_unique(cls, v):
        return _unique_ids(v, "section") if v is not None else v


class SectionOrder(CamelModel):
    id: str
    order: int


# ==================== Taxonomies ====================

class EducationLevel(CamelModel):
    code: str = Field(..., min_length=1)
    name: str
    description: Optional[str] = None
    active: bool = True
    order: int = 1
    default_grades: List[str] = []
    custom_fields: List[DynamicField] = []


class EducationLevelUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None
    order: Optional[int] = None
    default_grades: Optional[List[str]] = None
    custom_fields: Optional[List[DynamicField]] = None


class Subject(CamelModel):
    code: str = Field(..., min_length=1)
    name: str
    description: Optional[str] = None
    education_levels: List[str] = []
    active: bool = True
    order: int = 1
    categories: List[str] = []
    custom_fields: List[DynamicField] = []


class SubjectUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    education_levels: Optional[List[str]] = None
    active: Optional[bool] = None
    order: Optional[int] = None
    categories: Optional[List[str]] = None
    custom_fields: Optional[List[DynamicField]] = None


class Grade(CamelModel):
    code: str = Field(..., min_length=1)
    name: str
    education_levels: List[str] = []
    active: bool = True
    order: int = 1


class GradeUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = None
    education_levels: Optional[List[str]] = None
    active: Optional[bool] = None
    order: Optional[int] = None


class LocationItem(CamelModel):
    code: str = Field(..., min_length=1)
    name: str
    active: bool = True
    order: int = 1


class LocationItemUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = None
    active: Optional[bool] = None
    order: Optional[int] = None


# ==================== Settings ====================

class ConfigSettings(CamelModel):
    max_education_levels: int = 10
    max_subjects_per_level: int = 20
    max_custom_fields: int = 50
    allow_custom_sections: bool = True
    require_approval: bool = False


class GeneralSettings(CamelModel):
    platform_name: str = "Tuition Management System"
    support_email: str = "support@example.com"
    description: str = "A comprehensive platform for managing tuition classes and students."
    teacher_auto_approval: bool = False
    allow_student_registration: bool = True


class GeneralSettingsUpdate(CamelModel):
    platform_name: Optional[str] = None
    support_email: Optional[str] = None
    description: Optional[str] = None
    teacher_auto_approval: Optional[bool] = None
    allow_student_registration: Optional[bool] = None


class BrandingSettings(CamelModel):
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: str = "#3b82f6"
    accent_color: str = "#8b5cf6"


class BrandingSettingsUpdate(CamelModel):
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: Optional[str] = None
    accent_color: Optional[str] = None


class DynamicConfigUpdate(CamelModel):
    """Top-level fields of the document; whatever is sent replaces the stored value"""
    name: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None
    education_levels: Optional[List[EducationLevel]] = None
    subjects: Optional[List[Subject]] = None
    grades: Optional[List[Grade]] = None
    cities: Optional[List[LocationItem]] = None
    districts: Optional[List[LocationItem]] = None
    provinces: Optional[List[LocationItem]] = None
    profile_sections: Optional[List[ProfileSection]] = None
    profile_templates: Optional[List[ProfileTemplate]] = None
    settings: Optional[ConfigSettings] = None
    general_settings: Optional[GeneralSettings] = None
    branding_settings: Optional[BrandingSettings] = None

    @field_validator(
        "education_levels", "subjects", "grades", "cities", "districts", "provinces",
    )
    @classmethod
    def codes_unique(cls, v):
        if v is None:
            return v
        codes = [item.code for item in v]
        duplicates = sorted({c for c in codes if codes.count(c) > 1})
        if duplicates:
            raise ValueError(f"duplicate codes: {', '.join(duplicates)}")
        return v

    @field_validator("profile_sections", "profile_templates")
    @classmethod
    def ids_unique(cls, v):
        return _unique_ids(v, "item") if v is not None else v
