# asocial/routers/activity_router.py
from fastapi import APIRouter, Depends, Query

from asocial.dependencies.activity import get_activity_feed
from asocial.services.activity import ActivityFeed

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=list)
async def recent_activity(limit: int = Query(20, ge=1, le=500), feed: ActivityFeed = Depends(get_activity_feed)):
    return [{"at": at.isoformat(), "message": message} for at, message in feed.recent(limit)]
