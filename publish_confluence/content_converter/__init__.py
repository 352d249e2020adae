"""Content conversion between Confluence storage format and template markup.

Export direction: ``parse_storage_markup`` -> ``export_to_template_markup``.
Publish direction: ``register_structured_macro_helpers`` -> ``render_page_template``.
"""

from .conversion_context import ConversionContext, Dialect
from .document_tree import Element, Literal, Node, Text, walk
from .errors import ConversionError, MismatchedBlockDirectiveError, ParseError, TemplateRenderError
from .formatting_normalizer import normalize_formatting, normalize_nodes
from .forward_converter import (
    StorageToTemplateConverter,
    export_storage_to_template,
    export_to_template_markup,
)
from .literal_preserver import directive_plugin, promote_directives, segment_template_text
from .macro_helpers import StructuredMacroHelper, SynthesisContext, register_structured_macro_helpers
from .macro_registry import DEFAULT_REGISTRY, MacroDescriptor, MacroRegistry
from .markdown_renderer import MarkdownRenderer, render_page_template, render_page_to_storage
from .storage_parser import parse_storage_markup
from .storage_validator import validate_storage_markup
from .template_renderer import HelperRegistry, check_block_pairing, render_template, scan_template

__all__ = [
    'ConversionContext',
    'ConversionError',
    'DEFAULT_REGISTRY',
    'Dialect',
    'Element',
    'HelperRegistry',
    'Literal',
    'MacroDescriptor',
    'MacroRegistry',
    'MarkdownRenderer',
    'MismatchedBlockDirectiveError',
    'Node',
    'ParseError',
    'StorageToTemplateConverter',
    'StructuredMacroHelper',
    'SynthesisContext',
    'TemplateRenderError',
    'Text',
    'check_block_pairing',
    'directive_plugin',
    'export_storage_to_template',
    'export_to_template_markup',
    'normalize_formatting',
    'normalize_nodes',
    'parse_storage_markup',
    'promote_directives',
    'register_structured_macro_helpers',
    'render_page_template',
    'render_page_to_storage',
    'render_template',
    'scan_template',
    'segment_template_text',
    'validate_storage_markup',
    'walk',
]
