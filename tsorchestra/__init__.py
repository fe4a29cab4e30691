"""
tsorchestra - TypeScript compilation orchestrator for serverless handlers

Resolves handler entry points, resolves compiler options from tsconfig.json
(or built-in defaults), compiles in a single tsc pass and reports the
emitted files.
"""

__version__ = "0.1.0"


__all__ = [
    "extract_file_names",
    "get_source_files",
    "get_typescript_config",
    "make_default_typescript_config",
    "run",
]

from .compiler import get_source_files, run
from .config import get_typescript_config, make_default_typescript_config
from .entrypoints import extract_file_names
