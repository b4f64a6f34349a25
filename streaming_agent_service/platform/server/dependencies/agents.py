"""Agent lookup for FastAPI routes."""

from collections.abc import Callable

from fastapi import HTTPException, Request

from streaming_agent_service.platform.agent.loop import AgentLoop


def get_agent(builder_cls: type) -> Callable[[Request], AgentLoop]:
    """Dependency returning the agent built at startup by ``builder_cls``.

    Agents are stored in ``app.state.agents`` keyed by their builder class.
    Requests that arrive before the lifespan has built them get a 503.

    Example:
        @router.post("/invoke")
        async def invoke(agent: AgentLoop = Depends(get_agent(AssistantAgentBuilder))):
            ...
    """

    def _get_agent(request: Request) -> AgentLoop:
        agent = getattr(request.app.state, "agents", {}).get(builder_cls)
        if agent is None:
            raise HTTPException(status_code=503, detail=f"{builder_cls.__name__} agent is not ready")
        return agent

    return _get_agent
