"""
Ordered rewrite rules for Razor markup.

Every rule rewrites the whole document before the next one runs; later rules
read per-file variables (the page class name, the form's item type) that
earlier rules set.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from razor_localizer.catalog import ResourceCatalog
from razor_localizer.keys import generate_resource_key, humanize
from razor_localizer.markup import ATTRIBUTE, Tag, lookup_expression, opening_tag_pattern, parse_tag

logger = logging.getLogger(__name__)

MARKUP_FILE_TYPE = '.razor'
DEFAULT_RESOURCE_CLASS = 'SharedResources'
LOCALIZER_NAMESPACE = 'Microsoft.Extensions.Localization'

CLASS_NAME_VARIABLE = 'className'
ITEM_TYPE_VARIABLE = 'TItem'

_ENTITY = re.compile(r'&#?\w+;')
_LETTER = re.compile(r'[^\W\d_]')
_RAW_TEXT_TAGS = frozenset({'script', 'style'})


@dataclass
class RuleContext:
    """Mutable state shared by the rules while one file is processed."""
    catalog: ResourceCatalog
    variables: Dict[str, str] = field(default_factory=dict)

    @property
    def class_name(self) -> str:
        return self.variables.get(CLASS_NAME_VARIABLE, '')

    @property
    def item_type(self) -> str:
        """The captured form item type, or the page class name when no form declared one."""
        return self.variables.get(ITEM_TYPE_VARIABLE) or self.class_name


RuleAction = Callable[[re.Match, RuleContext], str]


@dataclass
class MarkupRule:
    component_type: str
    action: RuleAction
    pattern: Optional[str] = None
    file_type: Optional[str] = MARKUP_FILE_TYPE
    _compiled: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    @property
    def regex(self) -> re.Pattern:
        if self._compiled is None:
            self._compiled = re.compile(self.pattern or opening_tag_pattern(self.component_type), re.DOTALL)
        return self._compiled

    def applies_to(self, file_type: Optional[str]) -> bool:
        return file_type is None or self.file_type is None or self.file_type == file_type


def last_segment(type_name: str) -> str:
    """``Models.Crm.Customer`` -> ``Customer``."""
    return type_name.split('.')[-1].strip() if type_name else ''


def do_not_replace(tag: Tag, attribute_name: str) -> bool:
    """True when the attribute is missing, empty or already an expression."""
    value = tag.get(attribute_name)
    return not value or value.startswith('@')


def replace_attribute_with_key(tag_text: str, catalog: ResourceCatalog, attribute_name: str, key: str) -> str:
    """
    Register the attribute's current text under ``key`` and point the attribute at it.

    Args:
        tag_text (str): The opening tag.
        catalog (ResourceCatalog): Receives ``key`` -> current attribute text.
        attribute_name (str): The text-bearing attribute, e.g. "Text" or "Title".
        key (str): The resource key.

    Returns:
        str: The rewritten tag, or ``tag_text`` unchanged when the guard applies.
    """
    tag = parse_tag(tag_text)
    if tag is None or do_not_replace(tag, attribute_name):
        return tag_text
    catalog.try_add(key, tag.get(attribute_name))
    return tag.with_attribute(attribute_name, lookup_expression(key))


def _register_existing_call(match: re.Match, context: RuleContext) -> str:
    key = match.group(0)
    context.catalog.try_add(key, '# ' + humanize(key))
    return key


def _localize_content(match: re.Match, context: RuleContext) -> str:
    original = match.group(0)
    if match.group('tag').lower() in _RAW_TEXT_TAGS:
        return original
    text = match.group('text')
    stripped = text.strip()
    if not _LETTER.search(_ENTITY.sub('', stripped)):
        return original
    fragment = generate_resource_key(stripped)
    if not fragment:
        return original
    key = f"{context.class_name}.{fragment}"
    context.catalog.try_add(key, stripped)
    leading = text[:len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()):]
    return match.group('open') + leading + lookup_expression(key) + trailing + match.group('close')


def _capture_item_type(match: re.Match, context: RuleContext) -> str:
    tag = parse_tag(match.group(0))
    item_type = last_segment(tag.get(ITEM_TYPE_VARIABLE)) if tag else ''
    if item_type and not item_type.startswith('@'):
        context.variables[ITEM_TYPE_VARIABLE] = item_type
    return match.group(0)


def _localize_grid_column(match: re.Match, context: RuleContext) -> str:
    original = match.group(0)
    tag = parse_tag(original)
    if tag is None or do_not_replace(tag, 'Title'):
        return original
    bound_property = tag.get('Property')
    if not bound_property or bound_property.startswith('@'):
        return original
    scope = last_segment(tag.get(ITEM_TYPE_VARIABLE)) or context.item_type
    return replace_attribute_with_key(original, context.catalog, 'Title', f"{scope}.{bound_property}")


def _localize_label(match: re.Match, context: RuleContext) -> str:
    original = match.group(0)
    tag = parse_tag(original)
    component = tag.get('Component') if tag else ''
    if not component:
        return original
    return replace_attribute_with_key(original, context.catalog, 'Text', f"{context.item_type}.{component}")


def _attribute_rule(attribute_name: str, scope: Callable[[RuleContext], str]) -> RuleAction:
    """Action keyed as ``{scope}.{synthesized attribute text}``."""
    def action(match: re.Match, context: RuleContext) -> str:
        original = match.group(0)
        tag = parse_tag(original)
        if tag is None:
            return original
        fragment = generate_resource_key(tag.get(attribute_name))
        if not fragment:
            return original
        return replace_attribute_with_key(original, context.catalog, attribute_name, f"{scope(context)}.{fragment}")
    return action


def _localize_validator(match: re.Match, context: RuleContext) -> str:
    original = match.group(0)
    tag = parse_tag(original)
    component = tag.get('Component') if tag else ''
    if not component:
        return original
    key = f"{context.item_type}.{component}.{match.group('type')}Validator"
    return replace_attribute_with_key(original, context.catalog, 'Text', key)


def _category_rule(category: str) -> RuleAction:
    """Action keyed as ``{category}.{attribute text}``, e.g. ``Button.Save``."""
    def action(match: re.Match, context: RuleContext) -> str:
        original = match.group(0)
        tag = parse_tag(original)
        text = tag.get('Text') if tag else ''
        if not text:
            return original
        return replace_attribute_with_key(original, context.catalog, 'Text', f"{category}.{text}")
    return action


CONTENT_PATTERN = (r'(?P<open><(?P<tag>[A-Za-z][\w.:-]*)(?P<attributes>(?:' + ATTRIBUTE + r')*)\s*>)'
                   r'(?P<text>[^<>@]*)'
                   r'(?P<close></(?P=tag)\s*>)')


def default_rules() -> List[MarkupRule]:
    """The built-in rules in the order they must run."""
    return [
        MarkupRule('ExistingLocalizerCall', _register_existing_call, pattern=r'(?<=@D\[")[^"]+'),
        MarkupRule('Content', _localize_content, pattern=CONTENT_PATTERN),
        MarkupRule('RadzenTemplateForm', _capture_item_type),
        MarkupRule('RadzenDropDownDataGridColumn', _localize_grid_column),
        MarkupRule('RadzenDataGridColumn', _localize_grid_column),
        MarkupRule('RadzenLabel', _localize_label),
        MarkupRule('RadzenFormField', _attribute_rule('Text', lambda context: context.item_type)),
        MarkupRule('Radzen(?:Text|Heading)', _attribute_rule('Text', lambda context: context.class_name)),
        MarkupRule('RadzenAlert', _attribute_rule('Title', lambda context: context.class_name)),
        MarkupRule(r'Radzen(?P<type>\w+)Validator', _localize_validator),
        MarkupRule('RadzenButton', _category_rule('Button')),
        MarkupRule('Radzen(?:Panel|Profile)MenuItem', _category_rule('Menu')),
    ]


class MarkupRuleEngine:
    """
    Applies an ordered list of ``MarkupRule`` objects to Razor files.

    The engine owns one ``RuleContext``; its variables are reset at the start
    of every ``apply_rules`` call so nothing captured in one file leaks into
    the next.
    """

    def __init__(self, catalog: ResourceCatalog, rules: Optional[Iterable[MarkupRule]] = None,
                 resource_class: str = DEFAULT_RESOURCE_CLASS):
        self.context = RuleContext(catalog)
        self.rules: List[MarkupRule] = list(rules) if rules is not None else default_rules()
        self.resource_class = resource_class
        self._injection_re = re.compile(
            r'@inject\s+(?:' + re.escape(LOCALIZER_NAMESPACE) + r'\.)?IStringLocalizer<\s*'
            + re.escape(resource_class) + r'\s*>\s+D\b')

    @property
    def catalog(self) -> ResourceCatalog:
        return self.context.catalog

    def register(self, rule: MarkupRule) -> 'MarkupRuleEngine':
        self.rules.append(rule)
        return self

    def set_variable(self, name: str, value: str):
        self.context.variables[name] = value

    def apply_rules(self, content: str, class_name: str, file_type: Optional[str] = None) -> str:
        """
        Run every applicable rule over ``content`` in registration order.

        Args:
            content (str): The file content.
            class_name (str): The component class name (the file name without extension).
            file_type (Optional[str]): Extension restricting which rules run; None runs all.

        Returns:
            str: The rewritten content.
        """
        self.context.variables.clear()
        self.set_variable(CLASS_NAME_VARIABLE, class_name)

        for rule in self.rules:
            if not rule.applies_to(file_type):
                continue

            def replace(match: re.Match, rule: MarkupRule = rule) -> str:
                original = match.group(0)
                modified = rule.action(match, self.context)
                if modified != original:
                    logger.info("Replace (%s): %s -> %s", rule.component_type, original, modified)
                return modified

            content = rule.regex.sub(replace, content)
        return content

    def ensure_localizer_injection(self, content: str) -> str:
        """Prepend the ``@inject ... D`` directive unless the file already has it."""
        if self._injection_re.search(content):
            return content
        newline = '\r\n' if '\r\n' in content else '\n'
        directive = f"@inject {LOCALIZER_NAMESPACE}.IStringLocalizer<{self.resource_class}> D"
        return directive + newline + content

    def process(self, content: str, class_name: str, file_type: Optional[str] = MARKUP_FILE_TYPE) -> str:
        return self.apply_rules(self.ensure_localizer_injection(content), class_name, file_type)
