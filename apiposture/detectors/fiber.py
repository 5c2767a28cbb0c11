"""Fiber: title-case verb methods, assignment-bound groups, handler last."""
from __future__ import annotations

from .base import BaseDetector, FrameworkGrammar, GroupBinding, HandlerPosition, verb_table
from ..models import Framework

FIBER_GRAMMAR = FrameworkGrammar(
    framework=Framework.FIBER,
    import_path="github.com/gofiber/fiber/v2",
    import_prefix="github.com/gofiber/fiber",
    verbs=verb_table("title"),
    handler_position=HandlerPosition.LAST,
    group_methods=frozenset({"Group"}),
    group_binding=GroupBinding.ASSIGNMENT,
    method_arg_calls=frozenset({"Add"}),
    method_arg_min_args=3,
    all_verb_calls=frozenset({"All"}),
)


class FiberDetector(BaseDetector):
    """app.Get(path, mw..., h), app.Add("GET", path, ...), app.All(path, ...)."""

    @property
    def grammar(self) -> FrameworkGrammar:
        return FIBER_GRAMMAR
