from trainer.models.profile import Profile
from trainer.models.lesson import Lesson
from trainer.models.analytics import AnalyticsDocument

__all__ = [
    "Profile",
    "Lesson",
    "AnalyticsDocument"
]
