"""Example tool demonstrating the tool pattern.

Copy this module as a starting point for new tools: a factory returning a
``BaseTool`` whose docstring becomes the description shown to the model.
"""

from langchain_core.tools import BaseTool, tool


def create_example_tool() -> BaseTool:
    @tool(parse_docstring=True)
    def example_tool(query: str) -> str:
        """An example tool that demonstrates the tool design pattern. Returns a processed version of the input.

        Args:
            query: Input query to process
        """
        return f"Processed: {query.upper()}"

    return example_tool
