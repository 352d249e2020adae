"""Conversion result and warning data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class WarningKind(Enum):
    """Kinds of recoverable problems reported during conversion."""
    UNSUPPORTED_MACRO = "unsupported-macro"
    MISSING_REQUIRED_ARGUMENT = "missing-required-argument"
    INVALID_ARGUMENT = "invalid-argument"
    VALIDATION = "validation"


@dataclass(frozen=True)
class ConversionWarning:
    """A recoverable problem found while converting one document.

    Attributes:
        kind: What went wrong
        message: Human-readable description
        macro: Template or structured macro name involved, if any
        argument: Argument name involved, if any
    """
    kind: WarningKind
    message: str
    macro: Optional[str] = None
    argument: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ConversionResult:
    """Result of converting one document in either direction.

    Attributes:
        content: Converted content (template markup or storage XHTML)
        metadata: Additional metadata about the conversion (e.g., page info)
        warnings: Recoverable problems met during conversion
    """
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    warnings: List[ConversionWarning] = field(default_factory=list)
