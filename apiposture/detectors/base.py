"""
FrameworkGrammar and BaseDetector.

Every supported Go web framework registers routes the same way in
outline: group handles carry a prefix and middleware, and verb calls on a
handle bind a path to a handler. BaseDetector runs that algorithm once;
each framework only declares its grammar.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, NamedTuple, Optional, Tuple

from tree_sitter import Node

from ..astutil import (
    ASSIGNMENT_TYPES,
    assignment_pairs,
    call_arguments,
    call_name,
    dotted_name,
    func_literal_param,
    handler_name,
    line_of,
    literal_arguments,
    node_text,
    split_method_call,
    string_value,
    walk,
)
from ..authorization import AuthorizationExtractor, AuthVocabulary, MiddlewareRef, merge
from ..models import ALL_METHODS, Endpoint, Framework, HTTPMethod
from ..source import SyntaxSource

logger = logging.getLogger("apiposture.detectors")


# =============================================================================
# GRAMMAR
# =============================================================================

class GroupBinding(Enum):
    NONE = "none"
    ASSIGNMENT = "assignment"   # api := r.Group("/api", mw...)
    CLOSURE = "closure"         # r.Route("/api", func(api chi.Router) {...})


class HandlerPosition(Enum):
    LAST = "last"       # path, mw..., handler
    SECOND = "second"   # path, handler, mw...


class FrameworkGrammar(NamedTuple):
    """Call-shape vocabulary of one routing framework."""
    framework: Framework
    import_path: str
    verbs: Mapping[str, HTTPMethod]
    handler_position: HandlerPosition
    import_prefix: Optional[str] = None             # any package below this also counts
    group_methods: FrozenSet[str] = frozenset()
    group_binding: GroupBinding = GroupBinding.NONE
    method_arg_calls: FrozenSet[str] = frozenset()  # verb passed as first argument
    method_arg_min_args: int = 2
    all_verb_calls: FrozenSet[str] = frozenset()
    use_methods: FrozenSet[str] = frozenset({"Use"})
    inline_middleware_calls: FrozenSet[str] = frozenset()
    min_route_args: int = 2
    pass_literal_args: bool = True
    bare_calls: bool = False                        # HandleFunc(...) without a receiver
    method_patterns: bool = False                   # "GET /users/{id}"
    unwrap_handlers: bool = False                   # Auth(http.HandlerFunc(h))
    require_slash: bool = False


def verb_table(style: str) -> Dict[str, HTTPMethod]:
    """Verb method names in ``upper`` (GET) or ``title`` (Get) spelling."""
    if style == "upper":
        return {m.value: m for m in ALL_METHODS}
    return {m.value.title(): m for m in ALL_METHODS}


@dataclass
class GroupInfo:
    """Prefix and middleware attached to one group handle within a file."""
    prefix: str = ""
    middleware: List[MiddlewareRef] = field(default_factory=list)
    scope: Optional[Tuple[int, int]] = None     # byte range of a closure group's body


class GroupTable:
    """
    File-scoped group lookup.

    Assignment-bound handles and root routers live in a flat name table.
    Closure parameters are only visible inside their function literal, so
    ``r.Group(func(r chi.Router) {...})`` never touches the outer ``r``.
    """

    def __init__(self):
        self.named: Dict[str, GroupInfo] = {}
        self.scoped: Dict[str, List[GroupInfo]] = {}

    def lookup(self, key: str, node: Node) -> Optional[GroupInfo]:
        """Innermost closure group named ``key`` around node, else the named entry."""
        position = node.start_byte
        enclosing = [
            g for g in self.scoped.get(key, ())
            if g.scope[0] <= position < g.scope[1]
        ]
        if enclosing:
            return max(enclosing, key=lambda g: g.scope[0])
        return self.named.get(key)

    def bind(self, key: str, group: GroupInfo) -> None:
        if group.scope is None:
            self.named[key] = group
        else:
            self.scoped.setdefault(key, []).append(group)

    def use(self, key: str, node: Node, refs: List[MiddlewareRef]) -> None:
        """Attach Use() middleware to the group the handle resolves to at node."""
        group = self.lookup(key, node)
        if group is None:
            group = self.named.setdefault(key, GroupInfo())
        group.middleware.extend(refs)


def join_prefix(parent: str, prefix: str) -> str:
    if not parent:
        return prefix
    if not prefix:
        return parent
    return parent.rstrip("/") + "/" + prefix.lstrip("/")


def resolve_method_arg(node: Node) -> Optional[HTTPMethod]:
    """Verb from ``"GET"``/``"get"`` or a ``http.MethodGet`` style constant."""
    value = string_value(node)
    if value is not None:
        return HTTPMethod.parse(value)
    if node.type == "selector_expression":
        field_name = node_text(node.child_by_field_name("field"))
        if field_name.startswith("Method"):
            return HTTPMethod.parse(field_name[len("Method"):])
    return None


# =============================================================================
# BASE DETECTOR (Abstract)
# =============================================================================

class BaseDetector(ABC):
    """
    Abstract base class for framework detectors.

    discover() makes two passes over the tree: find_groups() builds the
    file-scoped group table keyed by handle name, then every call
    expression is matched against the grammar's route shapes.
    """

    def __init__(self, vocabulary: Optional[AuthVocabulary] = None):
        self.extractor = AuthorizationExtractor(
            vocabulary, pass_literals=self.grammar.pass_literal_args
        )

    @property
    @abstractmethod
    def grammar(self) -> FrameworkGrammar:
        """Call-shape vocabulary for this framework."""
        pass

    @property
    def framework(self) -> Framework:
        return self.grammar.framework

    @property
    def vocabulary(self) -> AuthVocabulary:
        return self.extractor.vocabulary

    def can_handle(self, source: SyntaxSource) -> bool:
        g = self.grammar
        if source.has_import(g.import_path):
            return True
        return bool(g.import_prefix) and source.has_import_prefix(g.import_prefix)

    def discover(self, source: SyntaxSource) -> List[Endpoint]:
        groups = self.find_groups(source)
        endpoints = []
        for node in walk(source.root):
            if node.type != "call_expression":
                continue
            endpoint = self.extract_endpoint(node, source, groups)
            if endpoint is not None:
                endpoints.append(endpoint)
        return endpoints

    # -------------------------------------------------------------------------
    # Group resolution
    # -------------------------------------------------------------------------

    def find_groups(self, source: SyntaxSource) -> GroupTable:
        groups = GroupTable()
        g = self.grammar

        for node in walk(source.root):
            if g.group_binding is GroupBinding.ASSIGNMENT and (
                node.type in ASSIGNMENT_TYPES or node.type == "var_spec"
            ):
                for target, value in assignment_pairs(node):
                    self._bind_assigned_group(target, value, groups)

            elif node.type == "call_expression":
                split = split_method_call(node)
                if split is None:
                    continue
                receiver, method = split
                if g.group_binding is GroupBinding.CLOSURE and method in g.group_methods:
                    self._bind_closure_group(node, receiver, groups)
                elif method in g.use_methods:
                    key = dotted_name(receiver)
                    if key:
                        groups.use(key, node, self._middleware_refs(call_arguments(node)))

        return groups

    def _bind_assigned_group(self, target: Node, value: Node, groups: GroupTable) -> None:
        if value.type != "call_expression":
            return
        split = split_method_call(value)
        if split is None or split[1] not in self.grammar.group_methods:
            return
        key = dotted_name(target)
        if not key or key == "_":
            return

        args = call_arguments(value)
        # A computed prefix still records the group, with an empty prefix
        prefix = (string_value(args[0]) or "") if args else ""
        middleware = self._middleware_refs(args[1:])
        parent_key = dotted_name(split[0])
        parent = groups.lookup(parent_key, value) if parent_key != key else None
        groups.bind(key, self._child_group(parent, prefix, middleware))

    def _bind_closure_group(self, call: Node, receiver: Node, groups: GroupTable) -> None:
        args = call_arguments(call)
        if not args or args[-1].type != "func_literal":
            return
        body = args[-1]
        key = func_literal_param(body)
        if not key or key == "_":
            return
        prefix = (string_value(args[0]) or "") if len(args) >= 2 else ""
        parent = groups.lookup(dotted_name(receiver), call)
        groups.bind(key, self._child_group(parent, prefix, [], scope=(body.start_byte, body.end_byte)))

    @staticmethod
    def _child_group(parent: Optional[GroupInfo], prefix: str, middleware: List[MiddlewareRef],
                     scope: Optional[Tuple[int, int]] = None) -> GroupInfo:
        if parent is None:
            return GroupInfo(prefix=prefix, middleware=list(middleware), scope=scope)
        return GroupInfo(
            prefix=join_prefix(parent.prefix, prefix),
            middleware=list(parent.middleware) + list(middleware),
            scope=scope,
        )

    # -------------------------------------------------------------------------
    # Route extraction
    # -------------------------------------------------------------------------

    def extract_endpoint(self, call: Node, source: SyntaxSource,
                         groups: GroupTable) -> Optional[Endpoint]:
        g = self.grammar
        inline: List[MiddlewareRef] = []

        split = split_method_call(call)
        if split is not None:
            receiver, method = split
            receiver, inline = self._strip_inline_middleware(receiver)
            receiver_key = dotted_name(receiver)
        elif g.bare_calls:
            function = call.child_by_field_name("function")
            if function is None or function.type != "identifier":
                return None
            method, receiver_key = node_text(function), ""
        else:
            return None

        args = call_arguments(call)
        if method in g.verbs:
            methods = [g.verbs[method]]
        elif method in g.method_arg_calls:
            if len(args) < g.method_arg_min_args:
                return None
            verb = resolve_method_arg(args[0])
            if verb is None:
                return None
            methods = [verb]
            args = args[1:]
        elif method in g.all_verb_calls:
            methods = list(ALL_METHODS)
        else:
            return None

        if len(args) < g.min_route_args:
            return None

        route = string_value(args[0])
        if not route:
            logger.debug(f"{source.file_path}:{line_of(call)}: route path is not a literal, skipped")
            return None

        if g.method_patterns:
            route, pattern_method = self._split_method_pattern(route)
            if pattern_method is not None:
                methods = [pattern_method]
        if g.require_slash and "/" not in route:
            return None

        handler_node, route_mw_nodes = self._handler_and_middleware(args)
        wrappers: List[MiddlewareRef] = []
        if handler_node is not None and g.unwrap_handlers:
            handler_node, wrappers = self._unwrap_handler(handler_node)
        handler = handler_name(handler_node) if handler_node is not None else ""

        group = groups.lookup(receiver_key, call) if receiver_key else None
        group_mw = list(group.middleware) if group else []
        route_mw = inline + self._middleware_refs(route_mw_nodes) + wrappers

        group_auth = self.extractor.extract_group(group_mw)
        route_auth = self.extractor.extract(route_mw)

        return Endpoint(
            route=route,
            methods=methods,
            file_path=source.file_path,
            line_number=line_of(call),
            framework=g.framework,
            handler_name=handler,
            router_prefix=group.prefix if group else "",
            middleware=[mw.name for mw in group_mw + route_mw],
            authorization=merge(group_auth, route_auth, override=True),
        )

    def _handler_and_middleware(self, args: List[Node]) -> Tuple[Optional[Node], List[Node]]:
        if len(args) < 2:
            return None, []
        if self.grammar.handler_position is HandlerPosition.LAST:
            return args[-1], args[1:-1]
        return args[1], args[2:]

    def _strip_inline_middleware(self, receiver: Node) -> Tuple[Node, List[MiddlewareRef]]:
        """``r.With(a).With(b).Get`` -> receiver ``r`` plus middleware ``a, b``."""
        collected: List[List[MiddlewareRef]] = []
        while receiver.type == "call_expression":
            split = split_method_call(receiver)
            if split is None or split[1] not in self.grammar.inline_middleware_calls:
                break
            collected.append(self._middleware_refs(call_arguments(receiver)))
            receiver = split[0]
        refs: List[MiddlewareRef] = []
        for chunk in reversed(collected):
            refs.extend(chunk)
        return receiver, refs

    def _unwrap_handler(self, node: Node) -> Tuple[Node, List[MiddlewareRef]]:
        """Peel auth wrappers and HandlerFunc conversions off a handler argument."""
        wrappers: List[MiddlewareRef] = []
        while node.type == "call_expression":
            name = call_name(node)
            is_conversion = name.endswith("HandlerFunc")
            if not is_conversion and not (
                self.vocabulary.is_auth(name) or self.vocabulary.is_anonymous(name)
            ):
                break
            args = call_arguments(node)
            if not args:
                break
            if not is_conversion:
                wrappers.append(self._middleware_ref(node))
            node = args[-1]
        return node, wrappers

    @staticmethod
    def _split_method_pattern(route: str) -> Tuple[str, Optional[HTTPMethod]]:
        """Split a ``"GET /path"`` or ``"host/path"`` pattern."""
        method = None
        head, sep, rest = route.partition(" ")
        if sep:
            method = HTTPMethod.parse(head)
            if method is not None:
                route = rest.strip()
        if route and not route.startswith("/") and "/" in route:
            route = route[route.index("/"):]
        return route, method

    def _middleware_ref(self, node: Node) -> MiddlewareRef:
        literals: Tuple[str, ...] = ()
        if node.type == "call_expression":
            literals = tuple(literal_arguments(node))
        return MiddlewareRef(handler_name(node), literals)

    def _middleware_refs(self, nodes: List[Node]) -> List[MiddlewareRef]:
        refs = []
        for node in nodes:
            ref = self._middleware_ref(node)
            if ref.name:
                refs.append(ref)
        return refs
