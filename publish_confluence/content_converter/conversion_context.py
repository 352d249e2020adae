"""Per-conversion state threaded through both conversion directions."""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from publish_confluence.models.conversion_result import ConversionWarning, WarningKind

from .document_tree import Node

logger = logging.getLogger(__name__)

# Namespace for deterministic macro ids; any fixed UUID works.
MACRO_ID_NAMESPACE = uuid.UUID("6f1c3b52-8f6e-4d43-9a53-2b0f3c7a9d10")


class Dialect(Enum):
    """Target dialect of a conversion."""
    TEMPLATE = "template"  # export: storage format -> template markup
    STORAGE = "storage"    # publish: template invocation -> storage format


@dataclass
class ConversionContext:
    """State owned by exactly one conversion call.

    Nothing here is shared between documents. Concurrent conversions each
    build their own context, which is what keeps helper output independent
    of whatever else is rendering at the same time.

    Attributes:
        dialect: Which dialect the conversion produces
        include_comments: Render macros marked ``comment=true`` when publishing
        document_key: Stable name of the document (seeds generated ids)
        output: Nodes accumulated by the forward converter
        warnings: Recoverable problems met so far
        list_depth: Current list nesting depth of the forward converter
    """
    dialect: Dialect = Dialect.TEMPLATE
    include_comments: bool = False
    document_key: str = ""
    output: List[Node] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)
    list_depth: int = 0
    _counter: int = field(default=0, init=False, repr=False)

    def next_identifier(self) -> int:
        """Return the next value of the monotonically increasing counter."""
        self._counter += 1
        return self._counter

    def next_macro_id(self) -> str:
        """Return a deterministic ``ac:macro-id`` for the next macro."""
        number = self.next_identifier()
        return str(uuid.uuid5(MACRO_ID_NAMESPACE, f"{self.document_key}:{number}"))

    def warn(
        self,
        kind: WarningKind,
        message: str,
        macro: Optional[str] = None,
        argument: Optional[str] = None,
    ) -> None:
        """Record a recoverable problem and log it.

        Unsupported macros are expected in real pages and are logged at
        INFO; everything else is logged as a warning.
        """
        self.warnings.append(
            ConversionWarning(kind=kind, message=message, macro=macro, argument=argument)
        )
        if kind == WarningKind.UNSUPPORTED_MACRO:
            logger.info(message)
        else:
            logger.warning(message)
