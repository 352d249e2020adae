"""YAML configuration loading and validation.

This module loads the publish configuration from ``publish-confluence.yaml``.
Template paths are resolved against the directory of the configuration
file, and child pages inherit the space of their parent unless they name
their own.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError, FilesystemError
from .models import PageConfig, PublishConfig

DEFAULT_CONFIG_FILE = 'publish-confluence.yaml'

TEMPLATE_EXTENSIONS = {'.md', '.markdown', '.hbs', '.handlebars', '.html', '.xhtml'}


class ConfigLoader:
    """Handles publish configuration loading and validation.

    Configuration file structure:
        space_key: TEAM
        parent_page_title: Engineering      # optional
        include_comments: false             # optional
        pages:
          - page_title: Release Notes
            template_path: ./release-notes.md
            variables: {version: "1.2"}     # optional
            child_pages:                    # optional, same shape
              - page_title: "1.2"
                template_path: ./notes/1.2.md
    """

    REQUIRED_TOP_LEVEL_FIELDS = {'space_key', 'pages'}

    REQUIRED_PAGE_FIELDS = {'page_title', 'template_path'}

    @classmethod
    def load(cls, config_path: str) -> PublishConfig:
        """Load and parse configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            PublishConfig object with parsed configuration

        Raises:
            FilesystemError: If file cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise FilesystemError(
                config_path,
                'read',
                'Configuration file not found'
            )
        except PermissionError:
            raise FilesystemError(
                config_path,
                'read',
                'Permission denied'
            )
        except OSError as e:
            raise FilesystemError(
                config_path,
                'read',
                str(e)
            )

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML syntax: {str(e)}"
            )

        if config_dict is None:
            raise ConfigError("Configuration file is empty")

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        path = Path(config_path)
        return cls._parse_config(config_dict, path.parent, path)

    @classmethod
    def _parse_config(
        cls,
        config_dict: Dict[str, Any],
        base_dir: Path,
        config_path: Optional[Path] = None,
    ) -> PublishConfig:
        """Parse and validate the configuration dictionary.

        Raises:
            ConfigError: If configuration is invalid
        """
        missing_fields = cls.REQUIRED_TOP_LEVEL_FIELDS - set(config_dict.keys())
        if missing_fields:
            raise ConfigError(
                f"Missing required fields: {', '.join(sorted(missing_fields))}"
            )

        space_key = cls._required_string(config_dict, 'space_key', 'space_key')

        parent_page_title = config_dict.get('parent_page_title')
        if parent_page_title is not None:
            parent_page_title = str(parent_page_title).strip() or None

        include_comments = config_dict.get('include_comments', False)
        if not isinstance(include_comments, bool):
            raise ConfigError(
                f"Field 'include_comments' must be true or false, got {include_comments!r}",
                'include_comments'
            )

        pages = cls._parse_pages(config_dict['pages'], 'pages', space_key, {}, base_dir)
        if not pages:
            raise ConfigError("At least one page configuration is required", 'pages')

        return PublishConfig(
            space_key=space_key,
            pages=pages,
            parent_page_title=parent_page_title,
            include_comments=include_comments,
            config_path=config_path,
        )

    @classmethod
    def _parse_pages(
        cls,
        pages_raw: Any,
        field_path: str,
        space_key: str,
        inherited_variables: Dict[str, Any],
        base_dir: Path,
    ) -> List[PageConfig]:
        if pages_raw is None:
            return []
        if not isinstance(pages_raw, list):
            raise ConfigError(f"Field '{field_path}' must be a list", field_path)

        pages = []
        for i, page_dict in enumerate(pages_raw):
            page_path = f'{field_path}[{i}]'
            if not isinstance(page_dict, dict):
                raise ConfigError(
                    f"Page configuration at index {i} must be a dictionary",
                    page_path
                )

            missing_page_fields = cls.REQUIRED_PAGE_FIELDS - set(page_dict.keys())
            if missing_page_fields:
                raise ConfigError(
                    f"Missing required fields: {', '.join(sorted(missing_page_fields))}",
                    page_path
                )

            page_title = cls._required_string(page_dict, 'page_title', f'{page_path}.page_title')
            template = cls._required_string(
                page_dict, 'template_path', f'{page_path}.template_path'
            )
            template_path = Path(template)
            if not template_path.is_absolute():
                template_path = base_dir / template_path
            if template_path.suffix.lower() not in TEMPLATE_EXTENSIONS:
                raise ConfigError(
                    f"Unsupported template type '{template_path.suffix}' "
                    f"(expected one of {', '.join(sorted(TEMPLATE_EXTENSIONS))})",
                    f'{page_path}.template_path'
                )

            page_space = space_key
            if page_dict.get('space_key') is not None:
                page_space = cls._required_string(page_dict, 'space_key', f'{page_path}.space_key')

            variables_raw = page_dict.get('variables') or {}
            if not isinstance(variables_raw, dict):
                raise ConfigError(
                    "Field 'variables' must be a dictionary",
                    f'{page_path}.variables'
                )
            variables = {**inherited_variables, **{str(k): v for k, v in variables_raw.items()}}

            pages.append(PageConfig(
                page_title=page_title,
                template_path=template_path,
                space_key=page_space,
                variables=variables,
                child_pages=cls._parse_pages(
                    page_dict.get('child_pages'),
                    f'{page_path}.child_pages',
                    page_space,
                    variables,
                    base_dir,
                ),
            ))
        return pages

    @staticmethod
    def _required_string(source: Dict[str, Any], key: str, field_path: str) -> str:
        value = source.get(key)
        if value is None or isinstance(value, (dict, list)):
            raise ConfigError(f"Field '{key}' must be a string", field_path)
        value = str(value).strip()
        if not value:
            raise ConfigError(f"Field '{key}' cannot be empty", field_path)
        return value
