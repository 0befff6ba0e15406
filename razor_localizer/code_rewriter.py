"""Replaces user-facing C# string literals with ``D["key"]`` lookups."""
import logging
from typing import List, Optional, Tuple

from tree_sitter import Node

from razor_localizer.catalog import ResourceCatalog
from razor_localizer.csharp_syntax import (
    declared_type_name,
    first_ancestor,
    first_descendant,
    iter_string_literals,
    node_text,
    parse_csharp,
)
from razor_localizer.keys import generate_resource_key
from razor_localizer.literal_filters import LiteralContext, LiteralFilters

logger = logging.getLogger(__name__)


def code_lookup_expression(key: str) -> str:
    return f'D["{key}"]'


def generic_scope(node: Node) -> Optional[str]:
    """
    First generic type argument of the invocation enclosing ``node``.

    ``DialogService.OpenAsync<AddUser>("Add User")`` yields ``AddUser``, so
    dialog titles are keyed by the dialog component rather than the caller.
    """
    invocation = first_ancestor(node, 'invocation_expression')
    if invocation is None:
        return None
    function = invocation.child_by_field_name('function')
    if function is None:
        return None
    type_arguments = first_descendant(function, 'type_argument_list')
    if type_arguments is None or not type_arguments.named_children:
        return None
    return node_text(type_arguments.named_children[0]).split('.')[-1] or None


def resource_key_for(node: Node, value: str, default_scope: Optional[str] = None) -> Optional[str]:
    """
    Build the resource key for a literal, or None when no key can be formed.

    Args:
        node (Node): The literal node.
        value (str): The literal's value.
        default_scope (Optional[str]): Scope used when the literal sits outside any type declaration.

    Returns:
        Optional[str]: A key such as "AddUser.adduser".
    """
    fragment = generate_resource_key(value)
    if not fragment:
        return None
    scope = generic_scope(node) or declared_type_name(node) or default_scope
    if not scope:
        return None
    return f"{scope}.{fragment}"


class CodeLiteralRewriter:
    def __init__(self, catalog: ResourceCatalog, filters: Optional[LiteralFilters] = None):
        self.catalog = catalog
        self.filters = filters if filters is not None else LiteralFilters()

    def rewrite(self, source: str, default_scope: Optional[str] = None) -> Tuple[str, bool]:
        """
        Rewrite every localizable literal in ``source``.

        Args:
            source (str): C# source text.
            default_scope (Optional[str]): Fallback key scope, normally the file's class name.

        Returns:
            Tuple[str, bool]: The new source and whether it differs from ``source``.
        """
        data = source.encode('utf-8')
        tree = parse_csharp(source)
        replacements: List[Tuple[int, int, bytes]] = []

        for node in iter_string_literals(tree.root_node):
            literal = LiteralContext(node)
            if not self.filters.is_localizable(literal):
                continue
            key = resource_key_for(node, literal.value, default_scope)
            if key is None:
                continue
            self.catalog.try_add(key, literal.value)
            lookup = code_lookup_expression(key)
            logger.info("Replace: %s -> %s", literal.text, lookup)
            replacements.append((node.start_byte, node.end_byte, lookup.encode('utf-8')))

        for start, end, replacement in reversed(replacements):
            data = data[:start] + replacement + data[end:]

        new_source = data.decode('utf-8')
        return new_source, new_source != source
