"""
Database module for TutorHub

Default configuration data and the seed entry point.
"""
from app.db.seed_data import (
    build_default_config,
    default_profile_layout,
    seed_all,
)

__all__ = ["build_default_config", "default_profile_layout", "seed_all"]
