"""
tsorchestra.schemas - Data structures shared by the orchestrator.

HandlerSpec -> entry points -> Program -> Diagnostic / EmitResult

- HandlerSpec: deployment-config function entry (read only here)
- SourceFile / Diagnostic: engine-reported files and issues
- EmitResult: outcome of one compile
- ParsedConfig: project config expanded into flat options
"""

from .handler import HandlerSpec
from .diagnostic import (
    Diagnostic,
    DiagnosticMessageChain,
    SourceFile,
    compute_line_starts,
    flatten_diagnostic_message_text,
)
from .emit_result import EmitResult
from .parsed_config import ParsedConfig

__all__ = [
    # Deployment config
    "HandlerSpec",
    # Diagnostics
    "Diagnostic",
    "DiagnosticMessageChain",
    "SourceFile",
    "compute_line_starts",
    "flatten_diagnostic_message_text",
    # Compile results
    "EmitResult",
    "ParsedConfig",
]
