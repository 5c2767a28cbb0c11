"""Echo: upper-case verb methods, assignment-bound groups, handler second."""
from __future__ import annotations

from .base import BaseDetector, FrameworkGrammar, GroupBinding, HandlerPosition, verb_table
from ..models import Framework

ECHO_GRAMMAR = FrameworkGrammar(
    framework=Framework.ECHO,
    import_path="github.com/labstack/echo/v4",
    import_prefix="github.com/labstack/echo",
    verbs=verb_table("upper"),
    handler_position=HandlerPosition.SECOND,
    group_methods=frozenset({"Group"}),
    group_binding=GroupBinding.ASSIGNMENT,
    method_arg_calls=frozenset({"Add"}),
    method_arg_min_args=3,
    all_verb_calls=frozenset({"Any"}),
)


class EchoDetector(BaseDetector):
    """e.GET(path, h, mw...), e.Add("GET", path, h, mw...), e.Any(path, h)."""

    @property
    def grammar(self) -> FrameworkGrammar:
        return ECHO_GRAMMAR
