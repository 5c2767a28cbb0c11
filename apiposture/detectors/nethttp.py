"""net/http: HandleFunc/Handle on any mux, every verb unless the pattern names one."""
from __future__ import annotations

from .base import BaseDetector, FrameworkGrammar, HandlerPosition
from ..models import Framework

NET_HTTP_GRAMMAR = FrameworkGrammar(
    framework=Framework.NET_HTTP,
    import_path="net/http",
    verbs={},
    handler_position=HandlerPosition.SECOND,
    all_verb_calls=frozenset({"HandleFunc", "Handle"}),
    use_methods=frozenset(),
    pass_literal_args=False,
    bare_calls=True,
    method_patterns=True,
    unwrap_handlers=True,
    require_slash=True,
)


class NetHTTPDetector(BaseDetector):
    """
    http.HandleFunc(path, h), mux.Handle(path, h), HandleFunc(path, h).

    Go 1.22 patterns such as ``"POST /users"`` narrow the verb set. Auth
    wrappers around the handler count as route middleware.
    """

    @property
    def grammar(self) -> FrameworkGrammar:
        return NET_HTTP_GRAMMAR
