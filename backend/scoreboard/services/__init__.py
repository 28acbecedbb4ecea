from scoreboard.services.auth import AuthService
from scoreboard.services.analytics import AnalyticsService

__all__ = [
    "AuthService",
    "AnalyticsService",
]
