from scoreboard.routers.auth import router as auth_router
from scoreboard.routers.setup import router as setup_router
from scoreboard.routers.users import router as users_router
from scoreboard.routers.groups import router as groups_router
from scoreboard.routers.members import router as members_router
from scoreboard.routers.group_rules import router as group_rules_router
from scoreboard.routers.scoring_rules import router as scoring_rules_router
from scoreboard.routers.score_records import router as score_records_router
from scoreboard.routers.analytics import router as analytics_router
from scoreboard.routers.activity_logs import router as activity_logs_router
from scoreboard.routers.admin import router as admin_router
from scoreboard.routers.cache import router as cache_router

__all__ = [
    "auth_router",
    "setup_router",
    "users_router",
    "groups_router",
    "members_router",
    "group_rules_router",
    "scoring_rules_router",
    "score_records_router",
    "analytics_router",
    "activity_logs_router",
    "admin_router",
    "cache_router",
]
