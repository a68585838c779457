"""
Configuration settings for the scheduling core.
Load configuration from environment variables or a .env file.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file (working directory first)
for env_file in (Path.cwd() / '.env', Path(__file__).parent.parent.parent.parent / '.env'):
    if env_file.exists():
        load_dotenv(env_file)
        break


class Settings:
    """Application settings loaded from environment variables."""

    # Logging
    LOG_LEVEL = os.getenv('STEEL_SCHEDULE_LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('STEEL_SCHEDULE_LOG_FILE', '')

    # ============================================================================
    # Analysis limits
    # ============================================================================
    MAX_TASKS_PER_ANALYSIS = int(os.getenv('STEEL_SCHEDULE_MAX_TASKS', '2500'))
    CPM_CACHE_SIZE = int(os.getenv('STEEL_SCHEDULE_CPM_CACHE_SIZE', '128'))

    # ============================================================================
    # Health report
    # ============================================================================
    MILESTONE_LOOKAHEAD_DAYS = int(os.getenv('STEEL_SCHEDULE_MILESTONE_LOOKAHEAD_DAYS', '30'))
    VARIANCE_THRESHOLD_DAYS = int(os.getenv('STEEL_SCHEDULE_VARIANCE_THRESHOLD_DAYS', '7'))

    @classmethod
    def validate(cls) -> list[str]:
        """
        Check that numeric settings are usable.
        Returns list of problems found.
        """
        problems = []
        if cls.MAX_TASKS_PER_ANALYSIS <= 0:
            problems.append('STEEL_SCHEDULE_MAX_TASKS must be positive')
        if cls.CPM_CACHE_SIZE < 0:
            problems.append('STEEL_SCHEDULE_CPM_CACHE_SIZE cannot be negative')
        if cls.MILESTONE_LOOKAHEAD_DAYS < 0:
            problems.append('STEEL_SCHEDULE_MILESTONE_LOOKAHEAD_DAYS cannot be negative')
        return problems


# Create settings instance
settings = Settings()
