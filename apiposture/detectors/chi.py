"""Chi: title-case verb methods, closure-scoped groups, inline With()."""
from __future__ import annotations

from .base import BaseDetector, FrameworkGrammar, GroupBinding, HandlerPosition, verb_table
from ..models import Framework

CHI_GRAMMAR = FrameworkGrammar(
    framework=Framework.CHI,
    import_path="github.com/go-chi/chi/v5",
    import_prefix="github.com/go-chi/chi",
    verbs=verb_table("title"),
    handler_position=HandlerPosition.SECOND,
    group_methods=frozenset({"Route", "Group"}),
    group_binding=GroupBinding.CLOSURE,
    method_arg_calls=frozenset({"Method", "MethodFunc"}),
    inline_middleware_calls=frozenset({"With"}),
)


class ChiDetector(BaseDetector):
    """
    r.Get(path, h), r.Method("GET", path, h), r.With(mw).Post(path, h).

    Groups come from ``r.Route(prefix, func(sub chi.Router) {...})`` and
    ``r.Group(func(sub chi.Router) {...})``, keyed by the closure
    parameter name.
    """

    @property
    def grammar(self) -> FrameworkGrammar:
        return CHI_GRAMMAR
