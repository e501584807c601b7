"""Sandboxed arithmetic expressions for per-action volume shaping.

Expressions are parsed with :mod:`ast` and checked against a whitelist of
node types, functions and variable names before they are ever evaluated.
Evaluation walks the tree directly; nothing is passed to ``eval``.

Example::

    expr = compile_expression("sin(time * 4) * 0.1")
    expr.evaluate(expression_variables(action, timeline, rand=0.5))
"""

from __future__ import annotations

import ast
import math
import operator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import ExpressionError
from .types import ActionKind, Player

if TYPE_CHECKING:
    from .normalize import Action, ActionTimeline

MAX_EXPRESSION_LENGTH = 1000
MAX_EXPRESSION_NODES = 256
MAX_EXPONENT = 64.0


class ExprVariable(Enum):
    """What the expression result drives during rendering."""

    NONE = "none"
    VARIATION = "variation"
    VALUE = "value"
    TIME_OFFSET = "time-offset"


VARIABLES = frozenset(
    {
        "frame",
        "fps",
        "time",
        "x",
        "y",
        "p",
        "player2",
        "rot",
        "accel",
        "down",
        "frames",
        "level_time",
        "rand",
    }
)

CONSTANTS = {"pi": math.pi, "e": math.e}


def _log(*args: float) -> float:
    # log(x) is base 10; log(base, x) takes an explicit base
    if len(args) == 1:
        return math.log10(args[0])
    base, value = args
    return math.log(value, base)


def _sign(value: float) -> float:
    return math.copysign(1.0, value) if value else 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


FUNCTIONS = {
    "abs": (abs, 1, 1),
    "min": (lambda *values: min(values), 1, 16),
    "max": (lambda *values: max(values), 1, 16),
    "sqrt": (math.sqrt, 1, 1),
    "floor": (math.floor, 1, 1),
    "ceil": (math.ceil, 1, 1),
    "round": (round, 1, 1),
    "exp": (math.exp, 1, 1),
    "log": (_log, 1, 2),
    "ln": (math.log, 1, 1),
    "sin": (math.sin, 1, 1),
    "cos": (math.cos, 1, 1),
    "tan": (math.tan, 1, 1),
    "asin": (math.asin, 1, 1),
    "acos": (math.acos, 1, 1),
    "atan": (math.atan, 1, 1),
    "atan2": (math.atan2, 2, 2),
    "sign": (_sign, 1, 1),
    "clamp": (_clamp, 3, 3),
}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: lambda v: float(not v),
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


@dataclass(frozen=True)
class CompiledExpression:
    """A validated expression tree plus the variables it reads."""

    text: str
    tree: ast.Expression
    names: frozenset[str]

    def evaluate(self, variables: dict[str, float]) -> float:
        """Evaluate with the given variables.

        Raises:
            ExpressionError: On math errors (division by zero, domain
                errors, oversized exponents) or a non-finite result.
        """
        try:
            result = float(_Evaluator(self.text, variables).visit(self.tree.body))
        except ExpressionError:
            raise
        except (ArithmeticError, ValueError, TypeError) as e:
            raise ExpressionError(self.text, f"{type(e).__name__}: {e}") from e
        if not math.isfinite(result):
            raise ExpressionError(self.text, f"result is not finite ({result})")
        return result


class _Validator(ast.NodeVisitor):
    def __init__(self, text: str):
        self.text = text
        self.nodes = 0
        self.names: set[str] = set()

    def _fail(self, reason: str):
        raise ExpressionError(self.text, reason)

    def generic_visit(self, node: ast.AST) -> None:
        self.nodes += 1
        if self.nodes > MAX_EXPRESSION_NODES:
            self._fail(f"expression has more than {MAX_EXPRESSION_NODES} nodes")
        allowed = (
            ast.Expression,
            ast.BinOp,
            ast.UnaryOp,
            ast.BoolOp,
            ast.Compare,
            ast.IfExp,
            ast.Call,
            ast.Name,
            ast.Constant,
            ast.Load,
            ast.And,
            ast.Or,
            *_BINARY_OPS,
            *_UNARY_OPS,
            *_COMPARE_OPS,
        )
        if not isinstance(node, allowed):
            self._fail(f"'{type(node).__name__}' is not allowed")
        super().generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            self._fail(f"only numeric literals are allowed, got {node.value!r}")
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id not in VARIABLES and node.id not in CONSTANTS:
            self._fail(f"unknown variable '{node.id}'")
        self.names.add(node.id)
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            name = getattr(node.func, "id", type(node.func).__name__)
            self._fail(f"unknown function '{name}'")
        if node.keywords:
            self._fail("keyword arguments are not allowed")
        _, min_args, max_args = FUNCTIONS[node.func.id]
        if not min_args <= len(node.args) <= max_args:
            self._fail(f"wrong number of arguments to {node.func.id}()")
        self.nodes += 1
        for arg in node.args:
            self.visit(arg)


class _Evaluator(ast.NodeVisitor):
    def __init__(self, text: str, variables: dict[str, float]):
        self.text = text
        self.variables = variables

    def visit_Constant(self, node: ast.Constant) -> float:
        return float(node.value)

    def visit_Name(self, node: ast.Name) -> float:
        if node.id in CONSTANTS:
            return CONSTANTS[node.id]
        try:
            return self.variables[node.id]
        except KeyError:
            raise ExpressionError(
                self.text, f"variable '{node.id}' has no value"
            ) from None

    def visit_BinOp(self, node: ast.BinOp) -> float:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ExpressionError(
                self.text, f"exponent {right} exceeds {MAX_EXPONENT}"
            )
        result = _BINARY_OPS[type(node.op)](left, right)
        if isinstance(result, complex):
            raise ExpressionError(self.text, "result is a complex number")
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> float:
        return _UNARY_OPS[type(node.op)](self.visit(node.operand))

    def visit_BoolOp(self, node: ast.BoolOp) -> float:
        values = [self.visit(value) for value in node.values]
        if isinstance(node.op, ast.And):
            return float(all(values))
        return float(any(values))

    def visit_Compare(self, node: ast.Compare) -> float:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not _COMPARE_OPS[type(op)](left, right):
                return 0.0
            left = right
        return 1.0

    def visit_IfExp(self, node: ast.IfExp) -> float:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Call(self, node: ast.Call) -> float:
        func = FUNCTIONS[node.func.id][0]
        return func(*(self.visit(arg) for arg in node.args))


def compile_expression(text: str) -> CompiledExpression:
    """Parse and validate an expression.

    Raises:
        ExpressionError: If the text is too long, does not parse, or uses a
            construct, function or variable outside the whitelist.
    """
    text = text.strip()
    if not text:
        raise ExpressionError(text, "expression is empty")
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError(
            text[:40] + "...", f"longer than {MAX_EXPRESSION_LENGTH} characters"
        )
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(text, f"syntax error: {e.msg}") from e

    validator = _Validator(text)
    validator.visit(tree)
    return CompiledExpression(text=text, tree=tree, names=frozenset(validator.names))


def expression_variables(
    action: Action, timeline: ActionTimeline, rand: float = 0.0
) -> dict[str, float]:
    """Variables visible to an expression for one action."""
    fps = timeline.fps
    frame = action.frame if action.frame is not None else action.time * fps
    frames = timeline.last_frame if timeline.last_frame > 0 else 1
    physics = action.physics
    return {
        "frame": float(frame),
        "fps": float(fps),
        "time": action.time,
        "x": physics.x if physics else 0.0,
        "y": physics.y if physics else 0.0,
        "p": frame / frames,
        "player2": 1.0 if action.player is Player.TWO else 0.0,
        "rot": physics.rotation if physics else 0.0,
        "accel": physics.y_accel if physics else 0.0,
        "down": 1.0 if action.kind is ActionKind.PRESS else 0.0,
        "frames": float(timeline.last_frame),
        "level_time": timeline.last_frame / fps,
        "rand": rand,
    }
