"""
Base classes for compilation engines.

The orchestrator never compiles anything itself. It shapes the inputs for an
engine and interprets what the engine reports back:
- CompilationEngine.create_program(): one program per compile or listing
- Program.emit(): write outputs, report emit-time diagnostics
- Program.get_pre_emit_diagnostics(): syntactic, semantic and option issues
- Program.get_source_files(): every file that is part of the program
"""

from abc import ABC, abstractmethod
from typing import Any

from tsorchestra.schemas import Diagnostic, EmitResult, SourceFile


class Program(ABC):
    """
    A whole-program view over a set of root files and compiler options.

    Programs are built fresh for every call and hold no state shared with
    other programs.
    """

    def __init__(self, root_names: list[str], options: dict[str, Any]):
        self.root_names = list(root_names)
        self.options = dict(options)

    @abstractmethod
    def emit(self) -> EmitResult:
        """
        Emit outputs for the program.

        Returns:
            EmitResult with the engine's skip signal, emit-time diagnostics
            and (when listEmittedFiles is set) the written files
        """
        pass

    @abstractmethod
    def get_pre_emit_diagnostics(self) -> list[Diagnostic]:
        """Diagnostics found before emit, in engine order."""
        pass

    @abstractmethod
    def get_source_files(self) -> list[SourceFile]:
        """Root files plus everything they pull in transitively."""
        pass


class CompilationEngine(ABC):
    """Factory for programs."""

    @abstractmethod
    def create_program(self, root_names: list[str], options: dict[str, Any]) -> Program:
        pass
