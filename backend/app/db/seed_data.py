"""
Database Seed Data Module

Default dynamic configuration and the default teacher profile layout.
Run with: python -m app.db.seed_data
"""
import asyncio
import copy
from typing import Any, Dict, List

from app.core.config import settings
from app.core.logging_config import logger
from app.schemas.dynamic_config import BrandingSettings, ConfigSettings, GeneralSettings


# ==================== Default Configuration ====================

DEFAULT_EDUCATION_LEVELS: List[Dict[str, Any]] = [
    {
        "code": "PRIMARY",
        "name": "Primary Education",
        "description": "Grades 1-5",
        "active": True,
        "order": 1,
        "defaultGrades": ["1", "2", "3", "4", "5"],
        "customFields": [],
    },
    {
        "code": "OL",
        "name": "Ordinary Level",
        "description": "Grades 6-11",
        "active": True,
        "order": 2,
        "defaultGrades": ["6", "7", "8", "9", "10", "11"],
        "customFields": [],
    },
    {
        "code": "AL",
        "name": "Advanced Level",
        "description": "Grades 12-13",
        "active": True,
        "order": 3,
        "defaultGrades": ["12", "13"],
        "customFields": [],
    },
]

DEFAULT_SUBJECTS: List[Dict[str, Any]] = [
    {
        "code": "MATHEMATICS",
        "name": "Mathematics",
        "description": "Mathematics and related subjects",
        "educationLevels": ["PRIMARY", "OL", "AL"],
        "active": True,
        "order": 1,
        "categories": ["STEM", "Core"],
        "customFields": [],
    },
    {
        "code": "SCIENCE",
        "name": "Science",
        "description": "Science subjects",
        "educationLevels": ["OL", "AL"],
        "active": True,
        "order": 2,
        "categories": ["STEM"],
        "customFields": [],
    },
    {
        "code": "ENGLISH",
        "name": "English",
        "description": "English language",
        "educationLevels": ["PRIMARY", "OL", "AL"],
        "active": True,
        "order": 3,
        "categories": ["Languages"],
        "customFields": [],
    },
]


def _grade_level(number: int) -> str:
    if number <= 5:
        return "PRIMARY"
    if number <= 11:
        return "OL"
    return "AL"


DEFAULT_GRADES: List[Dict[str, Any]] = [
    {
        "code": str(n),
        "name": f"Grade {n}",
        "educationLevels": [_grade_level(n)],
        "active": True,
        "order": n,
    }
    for n in range(1, 14)
]


def build_default_config(key: str) -> Dict[str, Any]:
    """Column values for a freshly created configuration document"""
    return {
        "key": key,
        "name": "Default Configuration",
        "description": "Default dynamic configuration for teacher profiles",
        "active": True,
        "education_levels": copy.deepcopy(DEFAULT_EDUCATION_LEVELS),
        "subjects": copy.deepcopy(DEFAULT_SUBJECTS),
        "grades": copy.deepcopy(DEFAULT_GRADES),
        "cities": [],
        "districts": [],
        "provinces": [],
        "profile_sections": [],
        "profile_templates": [],
        "settings": ConfigSettings().to_document(),
        "general_settings": GeneralSettings().to_document(),
        "branding_settings": BrandingSettings().to_document(),
    }


# ==================== Default Teacher Layout ====================

# Layout used for teachers whose profile predates dynamic profiles. The ids
# are the sectionData buckets the legacy fields are projected into.
DEFAULT_PROFILE_LAYOUT: List[Dict[str, Any]] = [
    {"id": "basic-info", "type": "basic", "order": 0, "visible": True, "config": {}},
    {"id": "education", "type": "education", "order": 1, "visible": True, "config": {}},
    {"id": "experience", "type": "experience", "order": 2, "visible": True, "config": {}},
    {"id": "pricing", "type": "pricing", "order": 3, "visible": True, "config": {}},
    {"id": "contact", "type": "contact", "order": 4, "visible": True, "config": {}},
]


def default_profile_layout() -> List[Dict[str, Any]]:
    return copy.deepcopy(DEFAULT_PROFILE_LAYOUT)


async def seed_all(key: str = None) -> None:
    """Create tables and make sure the default configuration document exists"""
    from app.core.database import AsyncSessionLocal, init_db
    from app.services.dynamic_config_service import DynamicConfigService

    await init_db()
    async with AsyncSessionLocal() as session:
        config = await DynamicConfigService(session).get_config(key or settings.DEFAULT_CONFIG_KEY)
        await session.commit()
        logger.info(f"Seeded configuration '{config.key}' (version {config.version})")


if __name__ == "__main__":
    asyncio.run(seed_all())
