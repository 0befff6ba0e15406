"""Thin helpers over the tree-sitter C# grammar."""
import re
from typing import Iterator, Optional

import tree_sitter_c_sharp
from tree_sitter import Language, Node, Parser, Tree

CSHARP_LANGUAGE = Language(tree_sitter_c_sharp.language())

PLAIN_STRING_LITERAL = 'string_literal'
VERBATIM_STRING_LITERAL = 'verbatim_string_literal'
RAW_STRING_LITERAL = 'raw_string_literal'
STRING_LITERAL_TYPES = frozenset({PLAIN_STRING_LITERAL, VERBATIM_STRING_LITERAL, RAW_STRING_LITERAL})

TYPE_DECLARATIONS = frozenset({'class_declaration', 'record_declaration', 'struct_declaration'})

_SIMPLE_ESCAPES = {
    "'": "'", '"': '"', '\\': '\\', '0': '\0', 'a': '\a', 'b': '\b',
    'e': '\x1b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t', 'v': '\v',
}
_ESCAPE = re.compile(r'\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|x[0-9a-fA-F]{1,4}|.)', re.DOTALL)


def parse_csharp(source: str) -> Tree:
    """Parse C# ``source`` into a tree-sitter tree."""
    parser = Parser(CSHARP_LANGUAGE)
    return parser.parse(source.encode('utf-8'))


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ''
    return node.text.decode('utf-8')


def ancestors(node: Node) -> Iterator[Node]:
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def first_ancestor(node: Node, *types: str) -> Optional[Node]:
    for ancestor in ancestors(node):
        if ancestor.type in types:
            return ancestor
    return None


def first_descendant(node: Node, *types: str) -> Optional[Node]:
    """Pre-order search below ``node`` for the first node of one of ``types``."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.type in types:
            return current
        stack.extend(reversed(current.children))
    return None


def iter_string_literals(root: Node) -> Iterator[Node]:
    """Yield every string literal node below ``root`` in source order."""
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type in STRING_LITERAL_TYPES:
            yield current
            continue
        stack.extend(reversed(current.children))


def _unescape(body: str) -> str:
    def replace(match: re.Match) -> str:
        escape = match.group(1)
        if escape[0] in 'uUx' and len(escape) > 1:
            return chr(int(escape[1:], 16))
        return _SIMPLE_ESCAPES.get(escape, '\\' + escape)
    return _ESCAPE.sub(replace, body)


def literal_value(node: Node) -> str:
    """
    Return the runtime value of a string literal node.

    Args:
        node (Node): A string_literal, verbatim_string_literal or raw_string_literal.

    Returns:
        str: The literal's value with quotes removed and escapes resolved.
    """
    text = node_text(node)
    if node.type == VERBATIM_STRING_LITERAL:
        return text[2:-1].replace('""', '"')
    if node.type == RAW_STRING_LITERAL:
        quotes = len(text) - len(text.lstrip('"'))
        body = text[quotes:len(text) - quotes]
        if '\n' in body:
            lines = body.split('\n')
            indent = lines[-1]
            lines = [line[len(indent):] if line.startswith(indent) else line for line in lines[1:-1]]
            return '\n'.join(lines)
        return body
    if text.endswith(('u8', 'U8')):
        text = text[:-2]
    return _unescape(text[1:-1])


def declared_type_name(node: Node) -> Optional[str]:
    """Name of the class, record or struct enclosing ``node``."""
    declaration = first_ancestor(node, *TYPE_DECLARATIONS)
    if declaration is None:
        return None
    name = declaration.child_by_field_name('name')
    return node_text(name) or None


def invoked_method_name(invocation: Node) -> Optional[str]:
    """
    Return the simple method name of ``a.b.Method<T>(...)`` invocations.

    Calls that are not member accesses (``Method(...)``) return None.
    """
    function = invocation.child_by_field_name('function')
    if function is None or function.type != 'member_access_expression':
        return None
    name = function.child_by_field_name('name')
    if name is None:
        return None
    if name.type == 'generic_name':
        identifier = next((child for child in name.children if child.type == 'identifier'), None)
        return node_text(identifier) or None
    return node_text(name) or None
