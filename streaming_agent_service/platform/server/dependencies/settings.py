from fastapi import Request

from streaming_agent_service.platform.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
