"""Gin: upper-case verb methods, assignment-bound groups, handler last."""
from __future__ import annotations

from .base import BaseDetector, FrameworkGrammar, GroupBinding, HandlerPosition, verb_table
from ..models import Framework

GIN_GRAMMAR = FrameworkGrammar(
    framework=Framework.GIN,
    import_path="github.com/gin-gonic/gin",
    import_prefix="github.com/gin-gonic/gin",
    verbs=verb_table("upper"),
    handler_position=HandlerPosition.LAST,
    group_methods=frozenset({"Group"}),
    group_binding=GroupBinding.ASSIGNMENT,
    method_arg_calls=frozenset({"Handle"}),
    all_verb_calls=frozenset({"Any"}),
    min_route_args=1,
)


class GinDetector(BaseDetector):
    """r.GET(path, mw..., h), r.Handle("GET", path, ...), r.Any(path, ...)."""

    @property
    def grammar(self) -> FrameworkGrammar:
        return GIN_GRAMMAR
