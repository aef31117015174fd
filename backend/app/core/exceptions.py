"""
Custom Exceptions for TutorHub
==============================

Services raise these instead of HTTPException so they stay usable outside
a request (scripts, tests). The API layer turns them into the standard
error envelope through ``tutorhub_error_handler``.

Usage:
    from app.core.exceptions import ProfileTemplateNotFoundError

    template = find_template(config, template_id)
    if not template:
        raise ProfileTemplateNotFoundError(template_id)
"""

from typing import Optional, Any, Dict, List


class TutorHubError(Exception):
    """Base exception for all TutorHub errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(TutorHubError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(TutorHubError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(TutorHubError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str, label: str = "ID"):
        super().__init__(
            f"{resource_type} with {label} \"{resource_id}\" not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class ConfigNotFoundError(ResourceNotFoundError):
    """Dynamic configuration document not found"""

    def __init__(self, key: str):
        super().__init__("Configuration", key, label="key")


class TeacherProfileNotFoundError(ResourceNotFoundError):
    """Teacher has no profile row yet"""

    def __init__(self, user_id: str):
        super().__init__("Teacher profile", user_id, label="user ID")


class TaxonomyItemNotFoundError(ResourceNotFoundError):
    """Education level / subject / grade / location item not found"""

    def __init__(self, item_type: str, code: str):
        super().__init__(item_type, code, label="code")


class ProfileSectionNotFoundError(ResourceNotFoundError):
    """Profile section not found in the catalog"""

    def __init__(self, section_id: str):
        super().__init__("Profile section", section_id)


class SectionFieldNotFoundError(ResourceNotFoundError):
    """Field not found inside a profile section"""

    def __init__(self, field_id: str, section_id: str):
        super().__init__("Field", field_id)
        self.details["section_id"] = section_id


class ProfileTemplateNotFoundError(ResourceNotFoundError):
    """Profile template not found in the catalog"""

    def __init__(self, template_id: str):
        super().__init__("Profile template", template_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(TutorHubError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateItemError(ValidationError):
    """An item with the same natural key already exists"""

    def __init__(self, item_type: str, natural_key: str, label: str = "code"):
        super().__init__(f"{item_type} with {label} \"{natural_key}\" already exists", field=label)
        self.code = "DUPLICATE_ITEM"
        self.details["item_type"] = item_type
        self.details["natural_key"] = natural_key


class ConfigLimitExceededError(ValidationError):
    """A settings cap (max levels, max fields, custom sections) was hit"""

    def __init__(self, message: str, setting: str):
        super().__init__(message)
        self.code = "CONFIG_LIMIT_EXCEEDED"
        self.details["setting"] = setting


class FormValidationError(ValidationError):
    """Submitted section data failed the field descriptors' rules"""

    def __init__(self, errors: List[Dict[str, Any]], section_id: Optional[str] = None):
        super().__init__("Form data failed validation")
        self.code = "FORM_VALIDATION_FAILED"
        self.details["errors"] = errors
        if section_id:
            self.details["section_id"] = section_id


# ============================================
# Concurrency Errors (409-type)
# ============================================

class ConcurrentUpdateError(TutorHubError):
    """Document was modified by another writer since it was read"""

    status_code = 409

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} \"{resource_id}\" was modified concurrently, reload and retry",
            code="CONCURRENT_UPDATE",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: TutorHubError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
