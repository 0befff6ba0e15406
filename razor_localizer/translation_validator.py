import re
from collections import Counter
from typing import Iterable, List, Set, Tuple

PLACEHOLDER_PATTERN = re.compile(r'\{([^{}]+)\}')
MOJIBAKE_PATTERN = re.compile(r'Ã[\x80-\xff]')


def check_key_coverage(base_keys: Iterable[str], target_keys: Iterable[str]) -> Tuple[Set[str], Set[str]]:
    """
    Compares the keys of a per-language resource file against the base catalog.

    Args:
        base_keys: Keys of the base (source language) .resx file.
        target_keys: Keys of the per-language .resx file.

    Returns:
        A tuple containing two sets:
        - missing_keys: Keys present in the base file but not yet translated.
        - stale_keys: Keys present in the translated file but gone from the base file.
    """
    base_keys = set(base_keys)
    target_keys = set(target_keys)
    return base_keys - target_keys, target_keys - base_keys


def check_placeholder_parity(base_string: str, target_string: str) -> bool:
    """
    Checks that a translation keeps every ``{0}`` / ``{name}`` placeholder of its source.

    Placeholders may be reordered, but each must appear as often as in the source.
    """
    return Counter(PLACEHOLDER_PATTERN.findall(base_string)) == Counter(PLACEHOLDER_PATTERN.findall(target_string))


def check_encoding_and_mojibake(file_path: str) -> List[str]:
    """
    Checks a resource file for UTF-8 encoding and common mojibake patterns.

    Args:
        file_path: The path to the file to check.

    Returns:
        A list of string error messages. An empty list means the file is valid.
    """
    errors = []
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except UnicodeDecodeError:
        errors.append(f"File '{file_path}' is not a valid UTF-8 file.")
        return errors
    except OSError as e:
        errors.append(f"Could not read file '{file_path}'. Reason: {e}")
        return errors

    # 'Ã' followed by a byte in 0x80-0xFF is UTF-8 text decoded as latin-1/cp1252
    if MOJIBAKE_PATTERN.search(content):
        errors.append(f"Potential mojibake detected in '{file_path}'. Found patterns like 'Ã¼', 'Ã¤', etc.")

    if '\uFFFD' in content:
        errors.append(f"File '{file_path}' contains the Unicode replacement character (\uFFFD), "
                      f"indicating a previous encoding/decoding error.")

    return errors
