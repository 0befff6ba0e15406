import os
import textwrap

import pytest

from razor_localizer.app_config import DEFAULT_EXCLUDE_PATTERNS, AppConfig

TEST_LANGUAGE_CODES = {"en": "English", "de": "German", "fr": "French", "cs": "Czech"}

PROJECT_FILE = """<Project Sdk="Microsoft.NET.Sdk.Web">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
    <RootNamespace>CrmSample</RootNamespace>
  </PropertyGroup>
</Project>
"""

SAMPLE_FILES = {
    "Pages/Login.razor": """\
        @page "/login"
        <RadzenText Text="Welcome" />
        <h3>Sign in</h3>
        """,
    "Pages/Users.razor": """\
        @page "/users"
        <RadzenButton Icon="add_circle_outline" Text="Add" Click="@AddButtonClick" />
        """,
    "Pages/Users.razor.cs": """\
        using System.Threading.Tasks;

        namespace CrmSample.Pages
        {
            public partial class Users
            {
                protected async Task AddButtonClick()
                {
                    await DialogService.OpenAsync<AddUser>("Add User");
                }
            }
        }
        """,
    "Pages/EditCustomer.razor": """\
        <RadzenTemplateForm TItem="CrmSample.Models.Customer" Data="@customer" Submit="@FormSubmit">
            <RadzenLabel Text="Company Name" Component="CompanyName" />
            <RadzenRequiredValidator Component="CompanyName" Text="Company name is required" />
            <RadzenButton ButtonType="ButtonType.Submit" Text="Save" />
        </RadzenTemplateForm>
        """,
    "App.razor": """\
        <Router AppAssembly="@typeof(App).Assembly">
            <h1>Not found</h1>
        </Router>
        """,
    "_Imports.razor": "@using Microsoft.AspNetCore.Components\n",
}


def make_config(project_dir=None, **overrides) -> AppConfig:
    """Build an AppConfig without touching the environment or a settings file."""
    project_dir = str(project_dir) if project_dir is not None else os.getcwd()
    project_file = os.path.join(project_dir, "CrmSample.csproj")
    values = dict(
        project_file=project_file,
        project_dir=project_dir,
        resource_file=os.path.join(project_dir, "Resources", "SharedResources.resx"),
        include_patterns=["*.razor"],
        exclude_patterns=list(DEFAULT_EXCLUDE_PATTERNS),
        backup=True,
        dry_run=False,
        force=False,
        source_folder=os.path.join(project_dir, "Resources"),
        output_folder=None,
        source_language="en",
        target_languages=["de"],
        model_name="gpt-4o-mini",
        requests_per_minute=600,
        resource_include_patterns=["*.resx"],
        resource_exclude_patterns=[],
        language_codes=dict(TEST_LANGUAGE_CODES),
        name_to_code={name.lower(): code for code, name in TEST_LANGUAGE_CODES.items()},
        openai_client=None,
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def blazor_project(tmp_path):
    """A small Blazor project on disk; returns its folder."""
    (tmp_path / "CrmSample.csproj").write_text(PROJECT_FILE, encoding="utf-8")
    for relative_path, content in SAMPLE_FILES.items():
        path = tmp_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
    return tmp_path


@pytest.fixture
def clean_environment(monkeypatch, tmp_path):
    """Run from an empty folder with no settings file and no API key."""
    monkeypatch.delenv("RAZOR_LOCALIZER_CONFIG", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
