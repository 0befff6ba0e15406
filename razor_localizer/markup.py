"""
A small tokenizer for Razor opening tags.

Razor attribute values may contain expressions such as ``@D["key"]`` whose
inner quotes collide with the attribute's own quotes, so values are matched
with a pattern that steps over bracketed or parenthesized expressions. The
same expressions may also stand unquoted, as in ``Click=@(() => Save())``.
Quoted values repeat possessively so a tag that fails to match is rejected
without backtracking through every way of splitting its expressions.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

EXPRESSION_VALUE = r'@[\w.]*(?:\[[^\]]*\]|\((?:[^()]|\([^()]*\))*\))'
DOUBLE_QUOTED_VALUE = r'(?:' + EXPRESSION_VALUE + r'|[^"@]|@)*+'
SINGLE_QUOTED_VALUE = r"[^']*"
UNQUOTED_VALUE = r'(?:' + EXPRESSION_VALUE + r'|[^\s"\'=<>`/]+)'
ATTRIBUTE_NAME = r'[^\s"\'<>/=]+'

ATTRIBUTE = (r'\s+' + ATTRIBUTE_NAME + r'(?:\s*=\s*(?:"' + DOUBLE_QUOTED_VALUE + r'"|\''
             + SINGLE_QUOTED_VALUE + r'\'|' + UNQUOTED_VALUE + r'))?')

ATTRIBUTE_RE = re.compile(
    r'(?P<name>' + ATTRIBUTE_NAME + r')'
    r'(?:\s*=\s*(?:"(?P<dq>' + DOUBLE_QUOTED_VALUE + r')"'
    r"|'(?P<sq>" + SINGLE_QUOTED_VALUE + r")'"
    r'|(?P<bare>' + UNQUOTED_VALUE + r')))?'
)
TAG_HEAD_RE = re.compile(r'<(?P<tag>[^\s/>]+)')


def opening_tag_pattern(component: str) -> str:
    """
    Regex for an opening (or self-closing) tag whose name matches ``component``.

    ``component`` is itself a regex fragment, so rules can match families of
    tags such as ``Radzen(?P<type>\\w+)Validator``.
    """
    return r'<(?P<tag>' + component + r')(?P<attributes>(?:' + ATTRIBUTE + r')*)\s*/?>'


def lookup_expression(key: str) -> str:
    """Razor expression reading ``key`` from the injected localizer."""
    return f'@D["{key}"]'


@dataclass
class Attribute:
    name: str
    value: Optional[str]
    quote: str
    value_start: int
    value_end: int


@dataclass
class Tag:
    """A tokenized opening tag; offsets refer to ``text``."""
    text: str
    name: str
    attributes: List[Attribute] = field(default_factory=list)

    def find(self, name: str) -> Optional[Attribute]:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None

    def get(self, name: str, default: str = '') -> str:
        attribute = self.find(name)
        if attribute is None or attribute.value is None:
            return default
        return attribute.value

    def has(self, name: str) -> bool:
        return self.find(name) is not None

    def with_attribute(self, name: str, new_value: str) -> str:
        """
        Return the tag text with the value of ``name`` replaced.

        Only existing attributes are rewritten. Unquoted values are wrapped in
        double quotes since lookup expressions contain brackets.
        """
        attribute = self.find(name)
        if attribute is None or attribute.value is None:
            return self.text
        if attribute.quote:
            replacement = new_value
        else:
            replacement = f'"{new_value}"'
        return self.text[:attribute.value_start] + replacement + self.text[attribute.value_end:]


def parse_tag(text: str) -> Optional[Tag]:
    """
    Tokenize an opening tag such as ``<RadzenButton Text="Save" Visible=false />``.

    Args:
        text (str): The tag text, starting with ``<``.

    Returns:
        Optional[Tag]: The tag, or None when ``text`` does not start with a tag name.
    """
    head = TAG_HEAD_RE.match(text)
    if head is None:
        return None
    tag = Tag(text=text, name=head.group('tag'))
    end = len(text) - 1 if text.endswith('>') else len(text)
    position = head.end()
    while position < end:
        if text[position].isspace() or text[position] == '/':
            position += 1
            continue
        match = ATTRIBUTE_RE.match(text, position, end)
        if match is None or match.end() == position:
            position += 1
            continue
        for group, quote in (('dq', '"'), ('sq', "'"), ('bare', '')):
            if match.group(group) is not None:
                tag.attributes.append(Attribute(match.group('name'), match.group(group), quote,
                                                match.start(group), match.end(group)))
                break
        else:
            tag.attributes.append(Attribute(match.group('name'), None, '', match.end(), match.end()))
        position = match.end()
    return tag
