"""
Prompt template rendering.

WHAT: Substitute {{expr}} placeholders with values taken from a node input
WHY: Prompt templates need property paths and a few string helpers, never arbitrary code
HOW: Parse each placeholder with ast and walk a whitelisted subset of expression nodes
"""

import ast
import re
from typing import Any

from ..utils.logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)

# Name that refers to the whole input rather than one of its properties
INPUT_NAME = "input"

STRING_METHODS = {"upper", "lower", "strip", "title"}
SAFE_FUNCTIONS = {"len": len, "str": str}

# Longer placeholders are looked up as raw keys without parsing
MAX_EXPRESSION_LENGTH = 500


class TemplateExpressionError(Exception):
    """Raised internally when a placeholder cannot be evaluated."""


def lookup(obj: Any, key: str) -> Any:
    """
    Read one property of a mapping or object.

    Underscore-prefixed names and methods are never reachable.

    Raises:
        TemplateExpressionError: If the property does not exist or is private
    """
    if key.startswith("_"):
        raise TemplateExpressionError(f"Access to private name '{key}' is not allowed")
    if isinstance(obj, dict):
        if key in obj:
            return obj[key]
        raise TemplateExpressionError(f"Unknown key '{key}'")
    if hasattr(obj, key):
        attribute = getattr(obj, key)
        if callable(attribute):
            raise TemplateExpressionError(f"'{key}' is a method, not a property")
        return attribute
    raise TemplateExpressionError(f"Unknown property '{key}'")


def _join(seq: Any, separator: str = ",") -> str:
    # Missing values become empty strings, as in a JavaScript Array.join
    if not isinstance(seq, (list, tuple)):
        raise TemplateExpressionError("join() needs a list")
    return str(separator).join("" if item is None else str(item) for item in seq)


class _Evaluator:
    def __init__(self, value: Any):
        self.value = value

    def visit(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Expression):
            return self.visit(node.body)

        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            if node.id == INPUT_NAME:
                return self.value
            return lookup(self.value, node.id)

        if isinstance(node, ast.Attribute):
            return lookup(self.visit(node.value), node.attr)

        if isinstance(node, ast.Subscript):
            container = self.visit(node.value)
            index = self.visit(node.slice)
            if not isinstance(index, (int, str)) or isinstance(index, bool):
                raise TemplateExpressionError("Subscripts must be integers or strings")
            if isinstance(index, str):
                return lookup(container, index)
            try:
                return container[index]
            except (IndexError, KeyError, TypeError) as e:
                raise TemplateExpressionError(str(e)) from e

        if isinstance(node, ast.Call):
            return self._call(node)

        raise TemplateExpressionError(f"Unsupported expression: {type(node).__name__}")

    def _call(self, node: ast.Call) -> Any:
        if node.keywords:
            raise TemplateExpressionError("Keyword arguments are not supported")
        args = [self.visit(arg) for arg in node.args]

        if isinstance(node.func, ast.Name) and node.func.id in SAFE_FUNCTIONS:
            if len(args) != 1:
                raise TemplateExpressionError(f"{node.func.id}() takes one argument")
            try:
                return SAFE_FUNCTIONS[node.func.id](args[0])
            except TypeError as e:
                raise TemplateExpressionError(str(e)) from e

        if isinstance(node.func, ast.Attribute):
            target = self.visit(node.func.value)
            method = node.func.attr
            if method == "join" and len(args) <= 1:
                return _join(target, *args)
            if method in STRING_METHODS and isinstance(target, str) and not args:
                return getattr(target, method)()

        raise TemplateExpressionError("Unsupported function call")


def evaluate_expression(expression: str, value: Any) -> Any:
    """
    Evaluate one placeholder expression against an input.

    Supported: names ("input" is the input itself, any other name a property
    of it), attribute and key paths, integer or string subscripts, literals,
    seq.join(sep), str.upper/lower/strip/title() and len()/str().

    Anything unsupported or failing falls back to looking up the raw
    expression text as a property, then to an empty string.

    Args:
        expression: Text between the braces
        value: Node input

    Returns:
        Evaluated value (not yet formatted)
    """
    expression = expression.strip()
    if len(expression) <= MAX_EXPRESSION_LENGTH:
        try:
            tree = ast.parse(expression, mode="eval")
            return _Evaluator(value).visit(tree)
        except (SyntaxError, ValueError, RecursionError, MemoryError, TemplateExpressionError) as e:
            logger.debug(f"Template expression {expression[:100]!r} not evaluated: {e}")

    try:
        return lookup(value, expression)
    except TemplateExpressionError:
        return ""


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(item) for item in value)
    return str(value)


def render_template(template: str, value: Any) -> str:
    """
    Replace every {{expr}} placeholder in a template.

    Args:
        template: Prompt template text
        value: Node input the expressions read from

    Returns:
        Rendered prompt
    """
    return PLACEHOLDER_PATTERN.sub(
        lambda match: format_value(evaluate_expression(match.group(1), value)),
        template
    )
