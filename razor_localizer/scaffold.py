"""Generated companions of the resource catalog: the marker class and the _Imports.razor using."""
import logging
import os
import re
import xml.etree.ElementTree as ET

from razor_localizer.backup_service import BackupService

logger = logging.getLogger(__name__)

IMPORTS_FILE_NAME = '_Imports.razor'

RESOURCE_STUB_TEMPLATE = """namespace {namespace}
{{
    public class {class_name}
    {{
    }}
}}
"""


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def get_project_namespace(project_file: str, resource_file: str) -> str:
    """
    Namespace of the resource marker class.

    ``RootNamespace`` from the project file (any MSBuild namespace), else the
    project file name, followed by the resource folder relative to the project.

    Args:
        project_file (str): Path to the .csproj file.
        resource_file (str): Path to the base .resx file.

    Returns:
        str: e.g. "CrmSample.Resources".
    """
    namespace = os.path.splitext(os.path.basename(project_file))[0]
    root = ET.parse(project_file).getroot()
    for element in root.iter():
        if _local_name(element.tag) == 'RootNamespace' and element.text and element.text.strip():
            namespace = element.text.strip()
            break

    relative_folder = os.path.relpath(os.path.dirname(os.path.abspath(resource_file)),
                                      os.path.dirname(os.path.abspath(project_file)))
    if relative_folder and relative_folder != os.curdir:
        namespace += '.' + '.'.join(part for part in relative_folder.split(os.sep) if part)
    return namespace


def add_using_directive(imports_path: str, namespace: str, writer: BackupService) -> bool:
    """
    Make sure ``_Imports.razor`` contains ``@using <namespace>``.

    Returns:
        bool: True if the file was created or changed.
    """
    directive = f"@using {namespace}"
    if not os.path.exists(imports_path):
        logger.info("Creating %s with %s", imports_path, directive)
        return writer.write_with_backup(imports_path, directive + '\n')

    with open(imports_path, 'r', encoding='utf-8', newline='') as f:
        content = f.read()
    if re.search(r'^\s*' + re.escape(directive) + r'\s*$', content, re.MULTILINE):
        return False

    newline = '\r\n' if '\r\n' in content else '\n'
    if content and not content.endswith(('\n', '\r')):
        content += newline
    logger.info("Adding %s to %s", directive, imports_path)
    return writer.write_with_backup(imports_path, content + directive + newline)


def generate_resource_stub(project_file: str, resource_file: str, writer: BackupService) -> bool:
    """
    Create the empty ``SharedResources`` class next to the .resx file if it is missing,
    and import its namespace in ``_Imports.razor``.

    Returns:
        bool: True if any file was written.
    """
    namespace = get_project_namespace(project_file, resource_file)
    imports_path = os.path.join(os.path.dirname(os.path.abspath(project_file)), IMPORTS_FILE_NAME)
    changed = add_using_directive(imports_path, namespace, writer)

    stub_path = os.path.splitext(resource_file)[0] + '.cs'
    if os.path.exists(stub_path):
        return changed

    class_name = os.path.splitext(os.path.basename(resource_file))[0]
    content = RESOURCE_STUB_TEMPLATE.format(namespace=namespace, class_name=class_name)
    logger.info("Generated: %s", stub_path)
    if not writer.dry_run:
        os.makedirs(os.path.dirname(os.path.abspath(stub_path)), exist_ok=True)
    return writer.write_with_backup(stub_path, content) or changed
