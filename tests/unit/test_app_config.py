"""Unit tests for the app_config module."""
import os
from unittest.mock import patch

import pytest
import yaml
from conftest import PROJECT_FILE, make_config
from openai import AsyncOpenAI

from razor_localizer.app_config import (
    CONFIG_FILE_ENV,
    DEFAULT_EXCLUDE_PATTERNS,
    ConfigurationError,
    load_app_config,
    resolve_project_file,
    validate_app_config,
)


def write_project(folder, name="CrmSample.csproj", content=PROJECT_FILE):
    path = os.path.join(str(folder), name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def write_settings(folder, settings, name="razor_localizer.yaml"):
    path = os.path.join(str(folder), name)
    with open(path, "w", encoding="utf-8") as f:
        if isinstance(settings, str):
            f.write(settings)
        else:
            yaml.safe_dump(settings, f)
    return path


@pytest.mark.usefixtures("clean_environment")
class TestLoadAppConfig:
    """Test cases for the load_app_config function."""

    def test_defaults_without_settings_file(self, tmp_path):
        """A folder holding one project file needs no configuration."""
        project_file = write_project(tmp_path)

        config = load_app_config("localize", working_dir=str(tmp_path))

        assert config.project_file == project_file
        assert config.project_dir == str(tmp_path)
        assert config.resource_file == os.path.join(str(tmp_path), "Resources", "SharedResources.resx")
        assert config.include_patterns == ["*.razor"]
        assert config.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS
        assert config.backup is True
        assert config.dry_run is False
        assert config.resource_class_name == "SharedResources"
        assert config.language_codes["de"] == "German"
        assert config.openai_client is None

    def test_settings_file_values(self, tmp_path):
        """Values from razor_localizer.yaml are used."""
        write_project(tmp_path)
        write_settings(tmp_path, {
            "resource": "Strings/AppStrings.resx",
            "include": ["Pages/*.razor"],
            "exclude": [],
            "backup": False,
            "translation": {"source_folder": "Strings", "target_languages": ["German", "fr"],
                            "model_name": "gpt-4o", "requests_per_minute": 10},
            "supported_locales": [{"code": "de", "name": "German"}, {"code": "fr", "name": "French"}],
            "logging": {"log_level": "debug"},
        })

        config = load_app_config("localize", working_dir=str(tmp_path))

        assert config.resource_file == os.path.join(str(tmp_path), "Strings", "AppStrings.resx")
        assert config.resource_class_name == "AppStrings"
        assert config.include_patterns == ["Pages/*.razor"]
        assert config.exclude_patterns == []
        assert config.backup is False
        assert config.source_folder == os.path.join(str(tmp_path), "Strings")
        assert config.target_languages == ["de", "fr"]
        assert config.model_name == "gpt-4o"
        assert config.requests_per_minute == 10
        assert config.language_codes == {"de": "German", "fr": "French"}
        assert config.log_level == "DEBUG"

    def test_settings_file_from_environment(self, tmp_path, monkeypatch):
        """RAZOR_LOCALIZER_CONFIG selects another settings file."""
        write_project(tmp_path)
        other = write_settings(tmp_path, {"dry_run": True}, name="ci.yaml")
        monkeypatch.setenv(CONFIG_FILE_ENV, other)

        config = load_app_config("localize", working_dir=str(tmp_path))

        assert config.dry_run is True

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        """CLI values replace file values; unset options keep them."""
        write_project(tmp_path)
        write_settings(tmp_path, {"backup": False, "include": ["*.razor"]})

        config = load_app_config("localize", overrides={
            "backup": True, "include": ["Shared/*.razor"], "exclude": None, "dry_run": True,
        }, working_dir=str(tmp_path))

        assert config.backup is True
        assert config.include_patterns == ["Shared/*.razor"]
        assert config.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS
        assert config.dry_run is True

    def test_language_names_and_casing_are_normalized(self, tmp_path):
        """Target languages accept names and any casing of a code."""
        config = load_app_config("translate", overrides={"target_languages": ["German", "PT-br", "xx"]},
                                 working_dir=str(tmp_path))

        assert config.target_languages == ["de", "pt-BR", "xx"]

    def test_empty_settings_file_means_defaults(self, tmp_path):
        """An empty YAML document is not an error."""
        write_project(tmp_path)
        write_settings(tmp_path, "")

        config = load_app_config("localize", working_dir=str(tmp_path))

        assert config.include_patterns == ["*.razor"]

    def test_invalid_yaml_raises(self, tmp_path):
        """Unparseable YAML is reported as a configuration error."""
        write_settings(tmp_path, "include: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_app_config("localize", working_dir=str(tmp_path))

    def test_schema_violation_raises(self, tmp_path):
        """Values of the wrong type name their location."""
        write_settings(tmp_path, {"backup": "sometimes"})

        with pytest.raises(ConfigurationError, match="backup"):
            load_app_config("localize", working_dir=str(tmp_path))

    def test_unknown_setting_raises(self, tmp_path):
        """Misspelled keys are rejected."""
        write_settings(tmp_path, {"translation": {"target_language": ["de"]}})

        with pytest.raises(ConfigurationError):
            load_app_config("translate", working_dir=str(tmp_path))

    def test_openai_client_only_for_real_translation(self, tmp_path, monkeypatch):
        """The API client is created for translate runs that are not dry runs."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        assert load_app_config("localize", working_dir=str(tmp_path)).openai_client is None
        assert load_app_config("translate", overrides={"dry_run": True},
                               working_dir=str(tmp_path)).openai_client is None
        assert isinstance(load_app_config("translate", working_dir=str(tmp_path)).openai_client, AsyncOpenAI)

    def test_api_key_from_dotenv(self, tmp_path):
        """A .env file in the working folder provides the API key."""
        with open(tmp_path / ".env", "w", encoding="utf-8") as f:
            f.write("OPENAI_API_KEY=sk-from-dotenv\n")

        with patch.dict(os.environ, {}):
            config = load_app_config("translate", working_dir=str(tmp_path))

        assert config.openai_client is not None


class TestResolveProjectFile:
    """Test cases for resolving --project."""

    def test_folder_with_one_project(self, tmp_path):
        project_file = write_project(tmp_path)

        assert resolve_project_file(None, str(tmp_path)) == project_file
        assert resolve_project_file(".", str(tmp_path)) == project_file

    def test_folder_with_two_projects_is_ambiguous(self, tmp_path):
        write_project(tmp_path)
        write_project(tmp_path, name="CrmSample.Tests.csproj")

        assert resolve_project_file(None, str(tmp_path)) is None

    def test_file_path_is_kept(self, tmp_path):
        assert resolve_project_file("src/App.csproj", str(tmp_path)) == os.path.join(str(tmp_path), "src", "App.csproj")


class TestValidateAppConfig:
    """Test cases for validate_app_config."""

    def test_valid_localize_config(self, tmp_path):
        write_project(tmp_path)

        assert validate_app_config(make_config(tmp_path), "localize") == []

    def test_missing_project_file(self, tmp_path):
        errors = validate_app_config(make_config(tmp_path), "localize")

        assert len(errors) == 1
        assert "does not exist" in errors[0]

    def test_unresolved_project_file(self, tmp_path):
        errors = validate_app_config(make_config(tmp_path, project_file=None), "restore")

        assert "No unique .csproj" in errors[0]

    def test_project_file_must_be_xml_project(self, tmp_path):
        write_project(tmp_path, content="not xml at all")
        assert "not valid XML" in validate_app_config(make_config(tmp_path), "localize")[0]

        write_project(tmp_path, content="<Solution />")
        assert "<Project>" in validate_app_config(make_config(tmp_path), "localize")[0]

    def test_project_file_extension(self, tmp_path):
        project_file = write_project(tmp_path, name="CrmSample.xml")

        errors = validate_app_config(make_config(tmp_path, project_file=project_file), "localize")

        assert "is not a .csproj file" in errors[0]

    def test_localize_needs_include_patterns(self, tmp_path):
        write_project(tmp_path)

        errors = validate_app_config(make_config(tmp_path, include_patterns=[]), "localize")

        assert errors == ["At least one include pattern is required."]

    def test_translate_checks(self, tmp_path):
        errors = validate_app_config(make_config(tmp_path, target_languages=["de", "xx"]), "translate")

        assert any("Source folder" in error for error in errors)
        assert any("'xx'" in error for error in errors)
        assert any("OPENAI_API_KEY" in error for error in errors)
        assert not any("'de'" in error for error in errors)

    def test_translate_dry_run_needs_no_key(self, tmp_path):
        (tmp_path / "Resources").mkdir()

        errors = validate_app_config(make_config(tmp_path, dry_run=True), "translate")

        assert errors == []

    def test_translate_needs_languages(self, tmp_path):
        (tmp_path / "Resources").mkdir()

        errors = validate_app_config(make_config(tmp_path, target_languages=[], dry_run=True), "translate")

        assert errors == ["No target languages configured. Use --target-languages or translation.target_languages."]

    def test_unknown_command(self, tmp_path):
        assert "Unknown command" in validate_app_config(make_config(tmp_path), "publish")[0]
