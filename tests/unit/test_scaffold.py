import os

from conftest import PROJECT_FILE

from razor_localizer.backup_service import BackupService
from razor_localizer.scaffold import add_using_directive, generate_resource_stub, get_project_namespace

STUB = """namespace CrmSample.Resources
{
    public class SharedResources
    {
    }
}
"""


def make_project(folder, content=PROJECT_FILE, name="CrmSample.csproj"):
    path = folder / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_namespace_from_root_namespace_and_folder(tmp_path):
    project_file = make_project(tmp_path)

    assert get_project_namespace(project_file, str(tmp_path / "Resources" / "SharedResources.resx")) == \
        "CrmSample.Resources"
    assert get_project_namespace(project_file, str(tmp_path / "Shared" / "Text" / "Strings.resx")) == \
        "CrmSample.Shared.Text"
    assert get_project_namespace(project_file, str(tmp_path / "Strings.resx")) == "CrmSample"


def test_namespace_falls_back_to_project_name(tmp_path):
    project_file = make_project(tmp_path, '<Project Sdk="Microsoft.NET.Sdk.Web"><PropertyGroup /></Project>',
                                name="Crm.Web.csproj")

    assert get_project_namespace(project_file, str(tmp_path / "Resources" / "X.resx")) == "Crm.Web.Resources"


def test_namespace_with_msbuild_xml_namespace(tmp_path):
    project_file = make_project(
        tmp_path,
        '<Project xmlns="http://schemas.microsoft.com/developer/msbuild/2003">'
        '<PropertyGroup><RootNamespace>Legacy.App</RootNamespace></PropertyGroup></Project>')

    assert get_project_namespace(project_file, str(tmp_path / "Resources" / "X.resx")) == "Legacy.App.Resources"


def test_using_directive_is_appended_once(tmp_path):
    imports = tmp_path / "_Imports.razor"
    imports.write_text("@using Microsoft.AspNetCore.Components", encoding="utf-8")

    with BackupService(str(tmp_path)) as writer:
        assert add_using_directive(str(imports), "CrmSample.Resources", writer)
        assert not add_using_directive(str(imports), "CrmSample.Resources", writer)

    assert imports.read_text(encoding="utf-8") == \
        "@using Microsoft.AspNetCore.Components\n@using CrmSample.Resources\n"


def test_using_directive_keeps_crlf(tmp_path):
    imports = tmp_path / "_Imports.razor"
    imports.write_bytes(b"@using System.Net.Http\r\n")

    with BackupService(str(tmp_path)) as writer:
        add_using_directive(str(imports), "CrmSample.Resources", writer)

    assert imports.read_bytes() == b"@using System.Net.Http\r\n@using CrmSample.Resources\r\n"


def test_using_directive_creates_missing_imports_file(tmp_path):
    imports = tmp_path / "_Imports.razor"

    with BackupService(str(tmp_path)) as writer:
        assert add_using_directive(str(imports), "CrmSample.Resources", writer)

    assert imports.read_text(encoding="utf-8") == "@using CrmSample.Resources\n"


def test_generate_resource_stub(tmp_path):
    project_file = make_project(tmp_path)
    resource_file = str(tmp_path / "Resources" / "SharedResources.resx")

    with BackupService(str(tmp_path)) as writer:
        assert generate_resource_stub(project_file, resource_file, writer)
        assert not generate_resource_stub(project_file, resource_file, writer)

    assert (tmp_path / "Resources" / "SharedResources.cs").read_text(encoding="utf-8") == STUB
    assert "@using CrmSample.Resources" in (tmp_path / "_Imports.razor").read_text(encoding="utf-8")


def test_existing_stub_is_left_alone(tmp_path):
    project_file = make_project(tmp_path)
    stub = tmp_path / "Resources" / "SharedResources.cs"
    stub.parent.mkdir()
    stub.write_text("// hand written\n", encoding="utf-8")

    with BackupService(str(tmp_path)) as writer:
        generate_resource_stub(project_file, str(tmp_path / "Resources" / "SharedResources.resx"), writer)

    assert stub.read_text(encoding="utf-8") == "// hand written\n"


def test_dry_run_creates_nothing(tmp_path):
    project_file = make_project(tmp_path)

    with BackupService(str(tmp_path), dry_run=True) as writer:
        generate_resource_stub(project_file, str(tmp_path / "Resources" / "SharedResources.resx"), writer)

    assert not os.path.exists(tmp_path / "Resources")
    assert not os.path.exists(tmp_path / "_Imports.razor")
