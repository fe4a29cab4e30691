"""
Compiler - run the compilation engine over resolved entry points.

- run(): one whole-program compile; prints located diagnostics, fails when
  the engine skipped emit, returns the emitted .js files
- get_source_files(): every source file the program consists of, for
  watching

Both build a fresh program per call; nothing is cached between calls.
"""

import logging
import sys
from typing import Any, Optional, TextIO

import click

from .engine import CompilationEngine, TscEngine
from .errors import CompilationFailedError
from .schemas import Diagnostic

logger = logging.getLogger(__name__)

OUTPUT_EXTENSION = ".js"


def _engine_or_default(engine: Optional[CompilationEngine]) -> CompilationEngine:
    return engine if engine is not None else TscEngine()


def format_diagnostic(diagnostic: Diagnostic) -> Optional[str]:
    """
    Format a diagnostic as "<file> (<line>,<col>): <message>".

    Returns None for diagnostics without a file and start offset. A start
    of 0 is a real position and prints as (1,1); output scrapers that
    expect lines only for non-zero offsets will see these too.
    """
    location = diagnostic.location()
    if location is None:
        return None
    line, col = location
    return f"{diagnostic.file.file_name} ({line},{col}): {diagnostic.message}"


def run(
    file_names: list[str],
    options: dict[str, Any],
    engine: Optional[CompilationEngine] = None,
    stream: Optional[TextIO] = None,
) -> list[str]:
    """
    Compile the entry points in a single program.

    Diagnostics are printed whether or not the compile succeeds; success is
    decided only by the engine's emit-skipped signal, never by diagnostic
    severity.

    Args:
        file_names: Entry points (see entrypoints.extract_file_names)
        options: Compiler options; not modified
        engine: Compilation engine (defaults to TscEngine())
        stream: Where diagnostic lines go (defaults to stdout)

    Returns:
        Emitted files ending in .js

    Raises:
        CompilationFailedError: If the engine skipped emit
    """
    options = {**options, "listEmittedFiles": True}
    program = _engine_or_default(engine).create_program(file_names, options)

    emit_result = program.emit()

    all_diagnostics = list(program.get_pre_emit_diagnostics()) + list(emit_result.diagnostics)

    out = stream if stream is not None else sys.stdout
    for diagnostic in all_diagnostics:
        line = format_diagnostic(diagnostic)
        if line is not None:
            click.echo(line, file=out)

    if emit_result.emit_skipped:
        logger.debug(f"Emit skipped with {len(all_diagnostics)} diagnostics")
        raise CompilationFailedError("Typescript compilation failed", diagnostics=all_diagnostics)

    emitted = [f for f in (emit_result.emitted_files or []) if f.endswith(OUTPUT_EXTENSION)]
    logger.debug(f"Emitted {len(emitted)} {OUTPUT_EXTENSION} files from {len(file_names)} entry points")
    return emitted


def get_source_files(
    root_file_names: list[str],
    options: dict[str, Any],
    engine: Optional[CompilationEngine] = None,
) -> list[str]:
    """
    List every source file in the program rooted at the given files.

    Includes the roots plus everything pulled in by imports, references and
    type declarations. Engine errors are not caught.
    """
    program = _engine_or_default(engine).create_program(root_file_names, options)
    return [source.file_name for source in program.get_source_files()]
