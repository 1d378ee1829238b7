from pydantic_settings import BaseSettings
from pathlib import Path

# Get the project root directory (parent of trainer folder)
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = f"sqlite:///{DATA_DIR / 'trainer.db'}"

    # Lesson JSON files picked up by bulk import
    lessons_dir: str = str(DATA_DIR / "lessons")
    # Analytics backups are written here as JSON
    backup_dir: str = str(DATA_DIR / "backups")

    log_level: str = "INFO"

    # Defaults copied into every new profile's settings
    default_exercise_mode: str = "ru-to-en-typing"
    default_exercises_per_session: int = 10
    default_timer_duration: int = 30

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_prefix = "TRAINER_"

settings = Settings()
