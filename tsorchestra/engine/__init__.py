"""Compilation engines for tsorchestra."""

from tsorchestra.engine.base import CompilationEngine, Program
from tsorchestra.engine.tsc import TscEngine, TscProgram, find_tsc, parse_tsc_output

__all__ = [
    "CompilationEngine",
    "Program",
    "TscEngine",
    "TscProgram",
    "find_tsc",
    "parse_tsc_output",
]
