"""
Filters deciding whether a C# string literal is user-facing text.

Each filter answers one question about a literal in its syntactic context and
returns True when the literal must NOT be localized. ``LiteralFilters`` ORs a
list of them together.
"""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from tree_sitter import Node

from razor_localizer.csharp_syntax import (
    PLAIN_STRING_LITERAL,
    RAW_STRING_LITERAL,
    VERBATIM_STRING_LITERAL,
    ancestors,
    first_ancestor,
    invoked_method_name,
    literal_value,
    node_text,
)

logger = logging.getLogger(__name__)

MIN_LITERAL_LENGTH = 3
MAX_LITERAL_LENGTH = 150

DEFAULT_FORMATTING_METHODS = ('ToString', 'Format')


@dataclass
class LiteralContext:
    """A string literal node together with the values the filters consult."""
    node: Node
    value: str = field(init=False)
    text: str = field(init=False)

    def __post_init__(self):
        self.text = node_text(self.node)
        self.value = literal_value(self.node)

    @property
    def kind(self) -> str:
        return self.node.type

    @property
    def parent(self) -> Optional[Node]:
        return self.node.parent

    @property
    def is_plain(self) -> bool:
        return self.node.type == PLAIN_STRING_LITERAL and not self.text.endswith(('u8', 'U8'))

    def ancestors(self):
        return ancestors(self.node)


class LiteralFilter(ABC):
    name: str = ''
    description: str = ''

    @abstractmethod
    def is_prohibited(self, literal: LiteralContext) -> bool:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class AttributeArgumentFilter(LiteralFilter):
    name = "Attribute declarations arguments"
    description = "Literals used as arguments in attribute declarations"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        parent = literal.parent
        return parent is not None and parent.type == 'attribute_argument'


class InterpolatedStringFilter(LiteralFilter):
    name = "Interpolated strings"
    description = "Literals used inside interpolated strings"

    _PARENTS = frozenset({
        'interpolated_string_expression',
        'interpolation',
        'interpolation_alignment_clause',
        'interpolation_format_clause',
    })

    def is_prohibited(self, literal: LiteralContext) -> bool:
        parent = literal.parent
        return parent is not None and parent.type in self._PARENTS


class IndexerFilter(LiteralFilter):
    name = "Indexer"
    description = "Literals used as the key of an element access, e.g. D[\"key\"]"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        parent = literal.parent
        if parent is None:
            return False
        if parent.type in ('element_access_expression', 'element_binding_expression'):
            return True
        if parent.type != 'argument' or parent.parent is None:
            return False
        argument_list = parent.parent
        return (argument_list.type == 'bracketed_argument_list'
                and argument_list.parent is not None
                and argument_list.parent.type in ('element_access_expression', 'element_binding_expression'))


class MemberAccessFilter(LiteralFilter):
    name = "Member access expressions"
    description = "Literals that are the receiver of a member access, e.g. \"abc\".Length"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        parent = literal.parent
        return parent is not None and parent.type in ('member_access_expression', 'conditional_access_expression')


class SwitchLabelFilter(LiteralFilter):
    name = "Switch statements labels"
    description = "Literals used as case labels in switch statements or as switch expression arm patterns"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        label = literal.node
        parent = label.parent
        while parent is not None and parent.type in ('constant_pattern', 'parenthesized_expression'):
            label = parent
            parent = parent.parent
        if parent is None:
            return False
        if parent.type == 'case_switch_label':
            return True
        if parent.type == 'switch_expression_arm':
            following = label.next_sibling
            while following is not None and following.type == 'when_clause':
                following = following.next_sibling
            return following is not None and following.type == '=>'
        if parent.type != 'switch_section':
            return False
        following = label.next_sibling
        return following is not None and following.type == ':'


class NamedArgumentFilter(LiteralFilter):
    name = "Named arguments"
    description = "Literals bound to a name with name: value or Name = value"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        parent = literal.parent
        if parent is None:
            return False
        if parent.type == 'argument':
            return any(child.type in (':', 'name_colon') for child in parent.children)
        if parent.type == 'anonymous_object_creation_expression':
            previous = literal.node.prev_sibling
            return previous is not None and previous.type == '='
        return parent.type in ('name_equals', 'name_colon')


class VariableDeclarationFilter(LiteralFilter):
    name = "Variable declarations"
    description = "Literals that initialize constants, which act as identifiers rather than text"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        declarator = literal.parent
        if declarator is not None and declarator.type == 'equals_value_clause':
            declarator = declarator.parent
        if declarator is None or declarator.type != 'variable_declarator':
            return False
        declaration = declarator.parent
        owner = declaration.parent if declaration is not None else None
        if owner is None:
            return False
        return any(node_text(child) == 'const' for child in owner.children if child.type != 'variable_declaration')


class TooShortLiteralFilter(LiteralFilter):
    name = "Too short literals"
    description = f"Literals shorter than {MIN_LITERAL_LENGTH} characters"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return len(literal.value) < MIN_LITERAL_LENGTH


class TooLongLiteralFilter(LiteralFilter):
    name = "Too long literals"
    description = f"Literals longer than {MAX_LITERAL_LENGTH} characters"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return len(literal.value) > MAX_LITERAL_LENGTH


class VerbatimStringFilter(LiteralFilter):
    name = "Verbatim strings"
    description = "Verbatim (@\"...\") and raw (\"\"\"...\"\"\") strings, usually paths or patterns"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return literal.kind in (VERBATIM_STRING_LITERAL, RAW_STRING_LITERAL) or literal.text.startswith('@')


class EscapeSequenceFilter(LiteralFilter):
    name = "Strings with escape sequences"
    description = "Literals written with escape sequences or containing a backslash"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return '\\' in literal.text or '\\' in literal.value


class SlashFilter(LiteralFilter):
    name = "Strings with slash"
    description = "Literals containing a forward slash, usually paths or URLs"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return '/' in literal.value


class MethodCallFilter(LiteralFilter):
    """Literals passed directly as an argument to one of ``method_names``."""
    description = "Literals used as arguments in specific method calls"

    def __init__(self, method_names: Optional[Sequence[str] | str] = None, name: str = "Method calls"):
        if isinstance(method_names, str):
            method_names = [method_names]
        self.method_names = tuple(method_names) if method_names else DEFAULT_FORMATTING_METHODS
        self.name = name

    def is_prohibited(self, literal: LiteralContext) -> bool:
        argument = literal.parent
        if argument is None or argument.type != 'argument':
            return False
        argument_list = argument.parent
        if argument_list is None or argument_list.type != 'argument_list':
            return False
        invocation = argument_list.parent
        if invocation is None or invocation.type != 'invocation_expression':
            return False
        return invoked_method_name(invocation) in self.method_names


class MethodCallRegexFilter(LiteralFilter):
    """Literals anywhere inside a call whose method name matches ``pattern``."""
    description = "Literals used as arguments in method calls matched by a regular expression"

    def __init__(self, pattern: str, name: str = "Method calls with regex"):
        self.pattern = re.compile(pattern)
        self.name = name

    def is_prohibited(self, literal: LiteralContext) -> bool:
        invocation = first_ancestor(literal.node, 'invocation_expression')
        if invocation is None:
            return False
        method_name = invoked_method_name(invocation)
        return method_name is not None and self.pattern.search(method_name) is not None


class EmptyOrWhitespaceFilter(LiteralFilter):
    name = "Empty or whitespace literals"
    description = "Literals that are empty or whitespace"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return not literal.value.strip()


class InitializerExpressionFilter(LiteralFilter):
    name = "Initializer expression"
    description = "Literals used inside collection or object initializers"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        return any(node.type in ('initializer_expression', 'collection_expression') for node in literal.ancestors())


class StringInDictionaryFilter(LiteralFilter):
    name = "String in dictionary access"
    description = "String literals used as bracketed arguments, e.g. dictionary keys"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        argument = literal.parent
        return (argument is not None and argument.type == 'argument'
                and argument.parent is not None and argument.parent.type == 'bracketed_argument_list')


class BinaryExpressionFilter(LiteralFilter):
    name = "Logical expression"
    description = "Literals that are direct operands of binary expressions"

    def is_prohibited(self, literal: LiteralContext) -> bool:
        parent = literal.parent
        return parent is not None and parent.type == 'binary_expression'


FilterFactory = Callable[[], LiteralFilter]

DEFAULT_FILTER_FACTORIES: List[FilterFactory] = [
    AttributeArgumentFilter,
    InterpolatedStringFilter,
    IndexerFilter,
    MemberAccessFilter,
    SwitchLabelFilter,
    NamedArgumentFilter,
    VariableDeclarationFilter,
    TooShortLiteralFilter,
    TooLongLiteralFilter,
    VerbatimStringFilter,
    EscapeSequenceFilter,
    SlashFilter,
    MethodCallFilter,
    lambda: MethodCallFilter('NavigateTo', name="Navigation calls"),
    lambda: MethodCallFilter('Query', name="Query calls"),
    lambda: MethodCallRegexFilter(r'Export', name="Export calls"),
    lambda: MethodCallRegexFilter(r'Invoke', name="Invoke calls"),
    EmptyOrWhitespaceFilter,
    InitializerExpressionFilter,
    StringInDictionaryFilter,
    BinaryExpressionFilter,
]


class LiteralFilters(LiteralFilter):
    """Composite filter: a literal is prohibited if any registered filter prohibits it."""
    name = "Composite filter"
    description = "Composite filter containing several individual filters"

    def __init__(self, filters: Optional[Iterable[LiteralFilter]] = None):
        self.filters: List[LiteralFilter] = list(filters) if filters is not None else default_filters()

    def register(self, literal_filter: LiteralFilter) -> 'LiteralFilters':
        self.filters.append(literal_filter)
        return self

    def matching_filter(self, literal: LiteralContext) -> Optional[LiteralFilter]:
        for literal_filter in self.filters:
            if literal_filter.is_prohibited(literal):
                return literal_filter
        return None

    def is_prohibited(self, literal: LiteralContext) -> bool:
        matched = self.matching_filter(literal)
        if matched is None:
            return False
        logger.debug("Literal %s is not localizable because of filter '%s'", literal.text, matched.name)
        return True

    def is_localizable(self, literal: LiteralContext) -> bool:
        return literal.is_plain and not self.is_prohibited(literal)

    def __iter__(self):
        return iter(self.filters)

    def __len__(self) -> int:
        return len(self.filters)


def default_filters() -> List[LiteralFilter]:
    return [factory() for factory in DEFAULT_FILTER_FACTORIES]
