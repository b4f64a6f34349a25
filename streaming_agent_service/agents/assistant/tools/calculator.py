"""Arithmetic calculator tool."""

import ast
import math
import operator
import re

from langchain_core.tools import BaseTool, tool

# Anything else is stripped before evaluation
_DISALLOWED = re.compile(r"[^0-9+\-*/().\s]")

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}
_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _evaluate(node: ast.AST) -> float:
    match node:
        case ast.Expression(body=body):
            return _evaluate(body)
        case ast.Constant(value=value) if isinstance(value, int | float) and not isinstance(value, bool):
            return value
        case ast.BinOp(left=left, op=op, right=right) if type(op) in _BINARY_OPS:
            return _BINARY_OPS[type(op)](_evaluate(left), _evaluate(right))
        case ast.UnaryOp(op=op, operand=operand) if type(op) in _UNARY_OPS:
            return _UNARY_OPS[type(op)](_evaluate(operand))
    raise ValueError(f"unsupported expression element {type(node).__name__}")


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def calculate(expression: str) -> str:
    """Evaluate an arithmetic expression over + - * / and parentheses.

    Returns:
        "Result: <n>" on success, otherwise an "Error ..." text for the model
    """
    sanitized = _DISALLOWED.sub("", expression)
    try:
        result = _evaluate(ast.parse(sanitized.strip(), mode="eval"))
    except (SyntaxError, ValueError, ZeroDivisionError, OverflowError) as e:
        return f'Error calculating "{expression}": {e}'

    if not math.isfinite(result):
        return "Error: Invalid calculation result"
    return f"Result: {_format_number(result)}"


def create_calculator_tool() -> BaseTool:
    """Create the calculator tool.

    Returns:
        StructuredTool for arithmetic
    """

    @tool(parse_docstring=True)
    def calculator(expression: str) -> str:
        """Performs mathematical calculations. Input should be a valid mathematical expression that can be evaluated safely.

        Args:
            expression: Mathematical expression to evaluate (e.g., "2 + 2", "10 * 5")
        """
        return calculate(expression)

    return calculator
