"""
EmitResult schema - the outcome of one compile invocation.

Created per invocation and handed back to the caller; nothing retains it.
"""

from dataclasses import dataclass, field
from typing import Optional

from .diagnostic import Diagnostic


@dataclass
class EmitResult:
    """
    Attributes:
        emit_skipped: True when the engine wrote no outputs
        diagnostics: Emit-time diagnostics, in engine order
        emitted_files: Every file the engine wrote (outputs, maps,
            declarations); None unless emitted file listing was requested
    """
    emit_skipped: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    emitted_files: Optional[list[str]] = None
