from app.services.dynamic_config_service import DynamicConfigService, config_to_dict
from app.services.dynamic_profile_service import DynamicProfileService
from app.services.audit_service import record_audit

__all__ = [
    # Configuration
    "DynamicConfigService",
    "config_to_dict",
    # Teacher profiles
    "DynamicProfileService",
    # Admin
    "record_audit",
]
