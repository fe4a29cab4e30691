"""
ParsedConfig schema - a project config expanded into flat compiler options.
"""

from dataclasses import dataclass, field
from typing import Any

from .diagnostic import Diagnostic


@dataclass
class ParsedConfig:
    """
    Attributes:
        options: Flat compiler options (extends merged, names canonical)
        file_names: Input files selected by files/include/exclude
        errors: Every problem found while expanding the config
        raw: The config object as parsed from the file
    """
    options: dict[str, Any] = field(default_factory=dict)
    file_names: list[str] = field(default_factory=list)
    errors: list[Diagnostic] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)
