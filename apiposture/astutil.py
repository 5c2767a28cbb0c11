"""Helpers over tree-sitter Go syntax trees."""

from __future__ import annotations

import json
from typing import Iterator, List, Optional, Tuple

from tree_sitter import Node

ANONYMOUS_HANDLER = "<anonymous>"

STRING_LITERAL_TYPES = {"interpreted_string_literal", "raw_string_literal"}
ASSIGNMENT_TYPES = {"short_var_declaration", "assignment_statement"}
IDENTIFIER_TYPES = {"identifier", "field_identifier", "package_identifier", "type_identifier"}


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def line_of(node: Node) -> int:
    """1-based line number."""
    return node.start_point[0] + 1


def named_children(node: Optional[Node]) -> List[Node]:
    if node is None:
        return []
    return [c for c in node.named_children if c.type != "comment"]


def unparenthesize(node: Optional[Node]) -> Optional[Node]:
    """Strip any number of wrapping parentheses; None when a group is not a single expression."""
    while node is not None and node.type == "parenthesized_expression":
        inner = named_children(node)
        node = inner[0] if len(inner) == 1 else None
    return node


def string_value(node: Optional[Node]) -> Optional[str]:
    """
    Value of a Go string literal, or None when the node is not one.

    Anything computed at runtime (identifiers, concatenations, calls)
    yields None.
    """
    node = unparenthesize(node)
    if node is None:
        return None
    text = node_text(node)
    if node.type == "raw_string_literal":
        return text[1:-1] if len(text) >= 2 else ""
    if node.type == "interpreted_string_literal":
        try:
            value = json.loads(text)
        except ValueError:
            return text.strip('"')
        return value if isinstance(value, str) else text.strip('"')
    return None


def string_slice(node: Optional[Node]) -> List[str]:
    """String elements of a ``[]string{...}`` composite literal."""
    if node is None or node.type != "composite_literal":
        return []
    body = node.child_by_field_name("body")
    values: List[str] = []
    for element in named_children(body):
        target = element
        if element.type in ("literal_element", "element"):
            inner = named_children(element)
            target = inner[0] if inner else None
        value = string_value(target)
        if value:
            values.append(value)
    return values


def literal_arguments(call: Node) -> List[str]:
    """String literals (and []string literals) passed directly to a call."""
    values: List[str] = []
    for arg in call_arguments(call):
        value = string_value(arg)
        if value:
            values.append(value)
        else:
            values.extend(string_slice(arg))
    return values


def call_arguments(call: Node) -> List[Node]:
    return named_children(call.child_by_field_name("arguments"))


def dotted_name(node: Optional[Node]) -> str:
    """
    Flatten an identifier or selector chain into ``a.b.c``.

    A chain rooted in something other than an identifier keeps only the
    selector part (``f().Get`` -> ``Get``).
    """
    parts: List[str] = []
    while node is not None:
        if node.type in IDENTIFIER_TYPES:
            parts.append(node_text(node))
            break
        if node.type != "selector_expression":
            break
        parts.append(node_text(node.child_by_field_name("field")))
        node = node.child_by_field_name("operand")
    return ".".join(reversed(parts))


def call_name(call: Node) -> str:
    """Dotted name of the called function, e.g. ``r.GET`` or ``http.HandleFunc``."""
    return dotted_name(call.child_by_field_name("function"))


def split_method_call(call: Node) -> Optional[Tuple[Node, str]]:
    """``(receiver node, method name)`` for ``<expr>.<Method>(...)`` calls."""
    function = call.child_by_field_name("function")
    if function is None or function.type != "selector_expression":
        return None
    operand = function.child_by_field_name("operand")
    method = node_text(function.child_by_field_name("field"))
    if operand is None or not method:
        return None
    return operand, method


def handler_name(node: Node) -> str:
    """Best-effort identity of a handler or middleware argument."""
    node = unparenthesize(node)
    if node is None:
        return ""
    if node.type == "identifier":
        return node_text(node)
    if node.type == "selector_expression":
        return dotted_name(node)
    if node.type == "call_expression":
        return call_name(node)
    if node.type == "func_literal":
        return ANONYMOUS_HANDLER
    return ""


def func_literal_param(func_lit: Node) -> str:
    """Name of the first parameter of a function literal, or empty."""
    params = func_lit.child_by_field_name("parameters")
    for decl in named_children(params):
        name = decl.child_by_field_name("name")
        if name is not None:
            return node_text(name)
    return ""


def assignment_pairs(node: Node) -> List[Tuple[Node, Node]]:
    """
    ``(target, value)`` pairs bound by an assignment or var declaration.

    Only positional one-to-one bindings are returned.
    """
    if node.type in ASSIGNMENT_TYPES:
        left = named_children(node.child_by_field_name("left"))
        right = named_children(node.child_by_field_name("right"))
    elif node.type == "var_spec":
        left = [c for c in node.children_by_field_name("name")]
        right = named_children(node.child_by_field_name("value"))
    else:
        return []
    if not left or len(left) != len(right):
        return []
    return list(zip(left, right))
