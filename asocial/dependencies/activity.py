# asocial/dependencies/activity.py
from fastapi import Request

from asocial.services.activity import ActivityFeed


def get_activity_feed(request: Request) -> ActivityFeed:
    return request.app.state.activity
