import os
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, Mapping, Optional, Tuple

XML_SPACE = '{http://www.w3.org/XML/1998/namespace}space'
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'

RESX_HEADERS = (
    ('resmimetype', 'text/microsoft-resx'),
    ('version', '2.0'),
    ('reader', 'System.Resources.ResXResourceReader, System.Windows.Forms, Version=4.0.0.0, '
               'Culture=neutral, PublicKeyToken=b77a5c561934e089'),
    ('writer', 'System.Resources.ResXResourceWriter, System.Windows.Forms, Version=4.0.0.0, '
               'Culture=neutral, PublicKeyToken=b77a5c561934e089'),
)


def load_resources(file_path: str) -> Dict[str, str]:
    """
    Load the string entries of a .resx file.

    Args:
        file_path (str): The path to the .resx file.

    Returns:
        Dict[str, str]: Entries in file order. A missing file yields an empty dict.
    """
    if not os.path.exists(file_path):
        return {}

    tree = ET.parse(file_path)
    resources: Dict[str, str] = {}
    for data in tree.getroot().iter('data'):
        name = data.get('name')
        # Typed entries (images, file refs) are not display strings
        if not name or data.get('type') or data.get('mimetype'):
            continue
        value_element = data.find('value')
        value = value_element.text if value_element is not None else None
        if value is not None and name not in resources:
            resources[name] = value
    return resources


def render_resources(resources: Mapping[str, str] | Iterable[Tuple[str, str]]) -> str:
    """
    Serialize ``resources`` as a complete .resx document.

    Args:
        resources: A mapping or an iterable of (key, value) pairs, written in order.

    Returns:
        str: The XML text, including the declaration.
    """
    items = resources.items() if isinstance(resources, Mapping) else resources

    root = ET.Element('root')
    for name, value in RESX_HEADERS:
        header = ET.SubElement(root, 'resheader', {'name': name})
        ET.SubElement(header, 'value').text = value
    for key, value in items:
        data = ET.SubElement(root, 'data', {'name': key, XML_SPACE: 'preserve'})
        ET.SubElement(data, 'value').text = value

    ET.indent(root, space='  ')
    return XML_DECLARATION + ET.tostring(root, encoding='unicode') + '\n'


def save_resources(file_path: str, resources: Mapping[str, str] | Iterable[Tuple[str, str]]):
    """
    Write ``resources`` to ``file_path``; the file is fully rewritten and
    parent folders are created when missing.
    """
    folder = os.path.dirname(file_path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8', newline='') as f:
        f.write(render_resources(resources))


def language_resource_path(base_file_path: str, language_code: str, output_folder: Optional[str] = None) -> str:
    """
    Build the per-language file name, e.g. SharedResources.resx -> SharedResources.de.resx.

    Args:
        base_file_path (str): The base (source language) .resx file.
        language_code (str): The culture code to insert before the extension.
        output_folder (Optional[str]): Folder for the result; defaults to the base file's folder.

    Returns:
        str: The per-language path.
    """
    folder = output_folder if output_folder is not None else os.path.dirname(base_file_path)
    stem, extension = os.path.splitext(os.path.basename(base_file_path))
    return os.path.join(folder, f"{stem}.{language_code}{extension or '.resx'}")


def culture_of(file_path: str, supported_codes: Iterable[str]) -> Optional[str]:
    """Return the culture infix of ``file_path`` if it is one of ``supported_codes``."""
    stem = os.path.splitext(os.path.basename(file_path))[0]
    if '.' not in stem:
        return None
    candidate = stem.rsplit('.', 1)[1]
    codes = {code.lower(): code for code in supported_codes}
    return codes.get(candidate.lower())
