"""Unit tests for cli.config module."""

import pytest

from publish_confluence.cli.config import ConfigLoader
from publish_confluence.cli.errors import ConfigError, FilesystemError


def write_config(directory, content):
    path = directory / "publish-confluence.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestConfigLoaderLoad:
    """Test cases for ConfigLoader.load."""

    def test_load_full_configuration(self, tmp_path):
        """All fields are parsed and child pages inherit from their parent."""
        config_path = write_config(tmp_path, """
space_key: TEAM
parent_page_title: Engineering
include_comments: true
pages:
  - page_title: Release Notes
    template_path: notes/index.md
    variables:
      product: Widget
      version: "1.2"
    child_pages:
      - page_title: "1.2"
        template_path: notes/1.2.hbs
        variables:
          version: "1.2.1"
      - page_title: Archive
        template_path: /abs/archive.xhtml
        space_key: ARCH
""")

        config = ConfigLoader.load(config_path)

        assert config.space_key == "TEAM"
        assert config.parent_page_title == "Engineering"
        assert config.include_comments is True
        assert str(config.config_path) == config_path

        notes = config.pages[0]
        assert notes.template_path == tmp_path / "notes" / "index.md"
        assert notes.space_key == "TEAM"

        release, archive = notes.child_pages
        assert release.page_title == "1.2"
        assert release.template_format == "hbs"
        assert release.variables == {"product": "Widget", "version": "1.2.1"}
        assert archive.space_key == "ARCH"
        assert str(archive.template_path) == "/abs/archive.xhtml"
        assert [page.page_title for page in config.all_pages()] == ["Release Notes", "1.2", "Archive"]

    def test_defaults(self, tmp_path):
        """Optional fields have defaults."""
        config = ConfigLoader.load(write_config(tmp_path, """
space_key: TEAM
pages:
  - page_title: Home
    template_path: home.md
"""))

        assert config.parent_page_title is None
        assert config.include_comments is False
        assert config.pages[0].variables == {}
        assert config.pages[0].child_pages == []

    def test_numeric_title_is_string(self, tmp_path):
        """YAML numbers used as titles become strings."""
        config = ConfigLoader.load(write_config(tmp_path, """
space_key: TEAM
pages:
  - page_title: 2024
    template_path: year.md
"""))

        assert config.pages[0].page_title == "2024"

    def test_missing_file(self, tmp_path):
        """A missing file raises FilesystemError."""
        with pytest.raises(FilesystemError) as exc_info:
            ConfigLoader.load(str(tmp_path / "missing.yaml"))

        assert exc_info.value.reason == "Configuration file not found"

    def test_invalid_yaml(self, tmp_path):
        """Invalid YAML raises ConfigError."""
        with pytest.raises(ConfigError, match="Invalid YAML syntax"):
            ConfigLoader.load(write_config(tmp_path, "space_key: [unclosed\n"))

    def test_empty_file(self, tmp_path):
        """An empty file raises ConfigError."""
        with pytest.raises(ConfigError, match="Configuration file is empty"):
            ConfigLoader.load(write_config(tmp_path, ""))

    def test_not_a_dictionary(self, tmp_path):
        """A top-level list raises ConfigError."""
        with pytest.raises(ConfigError, match="got list"):
            ConfigLoader.load(write_config(tmp_path, "- a\n- b\n"))


class TestConfigLoaderValidation:
    """Test cases for configuration validation."""

    @pytest.mark.parametrize("content,message", [
        ("pages: []\n", "Missing required fields: space_key"),
        ("space_key: TEAM\n", "Missing required fields: pages"),
        ("space_key: ''\npages: []\n", "'space_key' cannot be empty"),
        ("space_key: TEAM\npages: []\n", "At least one page configuration is required"),
        ("space_key: TEAM\npages: home\n", "'pages' must be a list"),
        ("space_key: TEAM\npages:\n  - just a string\n", "index 0 must be a dictionary"),
        ("space_key: TEAM\npages:\n  - page_title: Home\n", "Missing required fields: template_path"),
        (
            "space_key: TEAM\npages:\n  - page_title: Home\n    template_path: home.txt\n",
            "Unsupported template type '.txt'",
        ),
        (
            "space_key: TEAM\ninclude_comments: sometimes\npages:\n"
            "  - page_title: Home\n    template_path: home.md\n",
            "'include_comments' must be true or false",
        ),
        (
            "space_key: TEAM\npages:\n  - page_title: Home\n    template_path: home.md\n"
            "    variables: [a]\n",
            "'variables' must be a dictionary",
        ),
    ])
    def test_invalid_configuration(self, tmp_path, content, message):
        """Invalid configurations raise ConfigError with a precise message."""
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.load(write_config(tmp_path, content))

        assert message in str(exc_info.value)

    def test_error_names_nested_field(self, tmp_path):
        """Errors in child pages name the full field path."""
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.load(write_config(tmp_path, """
space_key: TEAM
pages:
  - page_title: Home
    template_path: home.md
    child_pages:
      - page_title: ""
        template_path: child.md
"""))

        assert exc_info.value.config_field == "pages[0].child_pages[0].page_title"
