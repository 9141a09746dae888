"""Request-scoped dependencies."""
from fastapi import Request

from thoughtlog.service import ThoughtLogService


def get_service(request: Request) -> ThoughtLogService:
    """The ThoughtLogService the app was built with (see create_app)."""
    return request.app.state.service
