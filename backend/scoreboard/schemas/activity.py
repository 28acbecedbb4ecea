from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from scoreboard.models.enums import ActivityType


class ActivityLogCreate(BaseModel):
    action: ActivityType
    description: str = Field(..., min_length=1)
    group_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
