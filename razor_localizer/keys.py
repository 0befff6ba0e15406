"""Resource key synthesis and display-text helpers."""
import re
import unicodedata

MAX_KEY_LENGTH = 40

_NON_ASCII = re.compile(r'[^\x00-\x7F]')
_WHITESPACE = re.compile(r'\s+')
_NON_WORD = re.compile(r'[^\w]', re.ASCII)
_CAMEL_CASE_BOUNDARY = re.compile(r'(?<=[a-z])([A-Z])')


def remove_diacritics(text: str) -> str:
    """Decompose ``text``, drop combining marks and recompose it."""
    decomposed = unicodedata.normalize('NFD', text)
    stripped = ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn')
    return unicodedata.normalize('NFC', stripped)


def generate_resource_key(text: str) -> str:
    """
    Turn free text into a resource key fragment.

    The steps run in a fixed order so that the same text always produces the
    same key. Two different texts may still produce the same key; the catalog
    keeps whichever was added first.

    Args:
        text (str): The display text, e.g. "Add User".

    Returns:
        str: A lowercase alphanumeric fragment of at most 40 characters,
        e.g. "adduser". An empty string means no usable key.
    """
    if not text:
        return ''
    value = remove_diacritics(text)
    value = _NON_ASCII.sub('', value)
    value = _WHITESPACE.sub('', value)
    value = _NON_WORD.sub('', value)
    value = value.replace('_', '')
    value = value.strip('_')
    value = value.lower()
    return value[:MAX_KEY_LENGTH]


def humanize(text: str) -> str:
    """
    Split a run-together identifier into words.

    Text that already contains a space is returned unchanged.

    Args:
        text (str): A value such as "FirstName".

    Returns:
        str: "First Name".
    """
    if ' ' in text:
        return text
    return _CAMEL_CASE_BOUNDARY.sub(r' \1', text).strip()
