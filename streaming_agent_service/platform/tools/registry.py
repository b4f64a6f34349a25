"""Tool registry and executor boundary.

The registry maps tool names to LangChain tools and is the single place
where tools run. ``execute`` never raises: executor exceptions and unknown
tool names come back as a failed ``ToolResult`` whose text is fed to the
model like any other result, giving it a chance to recover.
"""

import json
import logging
from collections.abc import Iterable
from time import monotonic
from typing import Any

from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel, ValidationError

from streaming_agent_service.platform.agent.exceptions import ToolArgumentsError
from streaming_agent_service.platform.agent.messages import ToolCallRequest, ToolResult
from streaming_agent_service.platform.agent.metrics import ToolMetricsLabels, record_tool_call

logger = logging.getLogger(__name__)

# Keys under which providers pass a single positional string argument
POSITIONAL_ARG_KEYS = frozenset({"input", "__arg1", "query", "text"})


class ToolRegistry:
    """Static mapping from tool name to tool definition and executor."""

    def __init__(self, tools: Iterable[BaseTool] = (), agent_slug: str = "agent") -> None:
        """Initialize the registry.

        Args:
            tools: Tools to register
            agent_slug: Agent slug used for metrics labeling

        Raises:
            ValueError: If two tools share a name
        """
        self._agent_slug = agent_slug
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool name collision: '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """OpenAI-style function schemas for every registered tool."""
        return [convert_to_openai_tool(tool) for tool in self._tools.values()]

    def validate(self, call: ToolCallRequest) -> dict[str, Any]:
        """Validate a call's arguments against its tool schema.

        Tries the arguments as given, then best-effort coercions: a single
        value holding a JSON object, or a single positional string mapped
        onto the tool's only required field.

        Args:
            call: The tool call to validate

        Returns:
            Arguments that satisfy the schema. Unknown tools are passed
            through unchanged; ``execute`` reports them.

        Raises:
            ToolArgumentsError: If no coercion satisfies the schema
        """
        tool = self._tools.get(call.name)
        schema = getattr(tool, "args_schema", None)
        if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
            return call.arguments

        first_error: ValidationError | None = None
        for candidate in self._coercion_candidates(call.arguments, schema):
            try:
                schema.model_validate(candidate)
            except ValidationError as e:
                first_error = first_error or e
                continue
            if candidate is not call.arguments:
                logger.info("Coerced arguments for tool %s", call.name)
            return candidate

        raise ToolArgumentsError(
            f"{first_error.error_count() if first_error else 0} validation error(s): "
            f"{self._describe_errors(first_error)}",
            tool_name=call.name,
        )

    @staticmethod
    def _coercion_candidates(arguments: dict[str, Any], schema: type[BaseModel]):
        yield arguments

        if len(arguments) != 1:
            return
        [(key, value)] = arguments.items()
        if not isinstance(value, str):
            return

        stripped = value.strip()
        if stripped.startswith("{"):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, dict):
                yield decoded

        required = [name for name, f in schema.model_fields.items() if f.is_required()]
        if key in POSITIONAL_ARG_KEYS and len(required) == 1 and key != required[0]:
            yield {required[0]: value}

    @staticmethod
    def _describe_errors(error: ValidationError | None) -> str:
        if error is None:
            return "arguments rejected"
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in error.errors()
        )

    async def execute(
        self,
        call: ToolCallRequest,
        arguments: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Run a tool and capture its output or failure.

        Args:
            call: The tool call to execute
            arguments: Validated arguments; defaults to the call's own arguments

        Returns:
            ToolResult with the output, or with an error description on failure
        """
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool %s", call.name)
            return ToolResult(
                tool_call_id=call.id,
                name=call.name,
                error=f"Unknown tool '{call.name}'. Available tools: {', '.join(self._tools)}",
            )

        labels = ToolMetricsLabels(self._agent_slug, call.name)
        logger.info("Executing tool %s", call.name)
        start_time = monotonic()
        try:
            output = await tool.ainvoke(arguments if arguments is not None else call.arguments)
        except Exception as e:
            record_tool_call(labels, duration=monotonic() - start_time, error=True)
            logger.warning("Tool %s failed: %s", call.name, e)
            return ToolResult(
                tool_call_id=call.id,
                name=call.name,
                error=str(e) or type(e).__name__,
            )

        record_tool_call(labels, duration=monotonic() - start_time)
        return ToolResult(tool_call_id=call.id, name=call.name, output=self._to_text(output))

    @staticmethod
    def _to_text(output: Any) -> str:
        if output is None:
            return "No result"
        if isinstance(output, str):
            return output
        return json.dumps(output, default=str)
