from fastapi import APIRouter

from scoreboard.config import get_settings
from scoreboard.services import cache_policy

router = APIRouter(prefix="/api/cache", tags=["Cache"])
settings = get_settings()


@router.get("/config")
async def get_cache_config():
    """TTL and invalidation maps for client-side query caches."""
    config = cache_policy.describe()
    config["headers_enabled"] = settings.emit_cache_headers
    return config
