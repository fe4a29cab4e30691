"""
tsc engine - runs the TypeScript command line compiler.

Each program writes a throw-away project file holding its options and
absolute root files, runs `tsc -p <project> --pretty false` once, and turns
the plain-text output back into structured results:

    src/a.ts(3,7): error TS2322: Type 'string' is not assignable to ...
      Nested elaboration, indented two spaces per level
    error TS5023: Unknown compiler option 'foo'.
    TSFILE: /abs/path/src/a.js

Exit status 1, 3 and 4 mean tsc skipped writing outputs.
"""

import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from tsorchestra.errors import EngineError, EngineNotFoundError
from tsorchestra.schemas import Diagnostic, DiagnosticMessageChain, EmitResult, SourceFile
from tsorchestra.tsconfig import PATH_LIST_OPTIONS, PATH_OPTIONS, absolute_paths

from .base import CompilationEngine, Program

logger = logging.getLogger(__name__)

TSC_ENV_VAR = "TSORCHESTRA_TSC"

LOCATED_RE = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\): "
    r"(?P<category>error|warning|suggestion|message) TS(?P<code>\d+): (?P<message>.*)$"
)
GLOBAL_RE = re.compile(
    r"^(?P<category>error|warning|suggestion|message) TS(?P<code>\d+): (?P<message>.*)$"
)
EMITTED_RE = re.compile(r"^TSFILE: (?P<file>.+)$")

EXIT_SUCCESS = 0
EXIT_OUTPUTS_GENERATED = 2
EXIT_OUTPUTS_SKIPPED = (1, 3, 4)

# Failures to write outputs; reported at emit time, everything else is
# found before emit
EMIT_DIAGNOSTIC_CODES = {5033, 5055, 5056}


def find_tsc(cwd: Optional[Union[str, Path]] = None) -> Optional[str]:
    """
    Locate a tsc executable.

    Order: $TSORCHESTRA_TSC, <cwd>/node_modules/.bin/tsc, then PATH.
    """
    from_env = os.environ.get(TSC_ENV_VAR)
    if from_env:
        return from_env

    base = Path(cwd) if cwd else Path.cwd()
    local = base / "node_modules" / ".bin" / "tsc"
    if local.exists():
        return str(local)

    return shutil.which("tsc")


def _build_chain(lines: list[tuple[int, str]]) -> Union[str, DiagnosticMessageChain]:
    """Rebuild a message chain from (depth, text) lines; depth 0 first."""
    if len(lines) == 1:
        return lines[0][1]

    root = DiagnosticMessageChain(message_text=lines[0][1])
    stack = [(0, root)]
    for depth, text in lines[1:]:
        node = DiagnosticMessageChain(message_text=text)
        while len(stack) > 1 and stack[-1][0] >= depth:
            stack.pop()
        stack[-1][1].next.append(node)
        stack.append((depth, node))
    return root


class TscOutput:
    """Diagnostics and emitted files parsed from tsc's plain-text output."""

    def __init__(self):
        self.diagnostics: list[Diagnostic] = []
        self.emitted_files: list[str] = []
        self.other_lines: list[str] = []


def parse_tsc_output(output: str, read_source) -> TscOutput:
    """
    Parse tsc output produced with --pretty false.

    Args:
        output: Combined tsc stdout
        read_source: Callable file name -> SourceFile, used to translate
            reported line/column back into offsets

    Returns:
        TscOutput
    """
    result = TscOutput()
    pending: Optional[dict[str, Any]] = None

    def flush():
        if pending is None:
            return
        file = None
        start = None
        if pending["file"] is not None:
            file = read_source(pending["file"])
            try:
                start = file.get_position_of_line_and_character(
                    pending["line"] - 1, pending["col"] - 1
                )
            except ValueError:
                logger.debug(f"Position {pending['line']},{pending['col']} outside {file.file_name}")
        result.diagnostics.append(Diagnostic(
            message_text=_build_chain(pending["lines"]),
            file=file,
            start=start,
            category=pending["category"],
            code=pending["code"],
        ))

    for raw_line in output.splitlines():
        line = raw_line.rstrip()
        if not line:
            continue

        if pending is not None and line[:1].isspace():
            stripped = line.lstrip(" ")
            depth = (len(line) - len(stripped)) // 2
            pending["lines"].append((max(depth, 1), stripped))
            continue

        emitted = EMITTED_RE.match(line)
        located = LOCATED_RE.match(line)
        global_ = GLOBAL_RE.match(line) if located is None else None

        if emitted or located or global_:
            flush()
            pending = None

        if emitted:
            result.emitted_files.append(emitted.group("file"))
        elif located:
            pending = {
                "file": located.group("file"),
                "line": int(located.group("line")),
                "col": int(located.group("col")),
                "category": located.group("category"),
                "code": int(located.group("code")),
                "lines": [(0, located.group("message"))],
            }
        elif global_:
            pending = {
                "file": None,
                "category": global_.group("category"),
                "code": int(global_.group("code")),
                "lines": [(0, global_.group("message"))],
            }
        else:
            flush()
            pending = None
            result.other_lines.append(line)

    flush()
    return result


class TscProgram(Program):
    """A program compiled by one tsc process."""

    def __init__(self, tsc_path: str, root_names: list[str], options: dict[str, Any], cwd: str):
        super().__init__(root_names, options)
        self.tsc_path = tsc_path
        self.cwd = cwd
        self._sources: dict[str, SourceFile] = {}
        self._output: Optional[TscOutput] = None
        self._returncode: Optional[int] = None

    def _absolute(self, path: str) -> str:
        return os.path.normpath(os.path.join(self.cwd, path))

    def _default_type_roots(self) -> list[str]:
        # tsc looks for @types next to the project file, which lives in a
        # temporary directory here
        roots = []
        for directory in [Path(self.cwd), *Path(self.cwd).parents]:
            candidate = directory / "node_modules" / "@types"
            if candidate.is_dir():
                roots.append(str(candidate))
        return roots

    def project_config(self) -> dict[str, Any]:
        """The project file contents handed to tsc."""
        compiler_options = {}
        for name, value in self.options.items():
            if name in PATH_OPTIONS and isinstance(value, str):
                value = self._absolute(value)
            elif name in PATH_LIST_OPTIONS and isinstance(value, list):
                value = [self._absolute(v) for v in value]
            compiler_options[name] = value
        if isinstance(compiler_options.get("paths"), dict) and "baseUrl" not in compiler_options:
            compiler_options["paths"] = absolute_paths(compiler_options["paths"], Path(self.cwd))
        compiler_options["pretty"] = False
        if "typeRoots" not in compiler_options:
            compiler_options["typeRoots"] = self._default_type_roots()

        return {
            "compilerOptions": compiler_options,
            "files": [self._absolute(name) for name in self.root_names],
        }

    def _invoke(self, *extra_args: str) -> subprocess.CompletedProcess:
        with tempfile.TemporaryDirectory(prefix="tsorchestra-") as tmp:
            project = Path(tmp) / "tsconfig.json"
            project.write_text(json.dumps(self.project_config(), indent=2), encoding="utf-8")
            command = [self.tsc_path, "-p", str(project), *extra_args]
            logger.debug(f"Executing: {' '.join(command)}")
            try:
                return subprocess.run(
                    command,
                    cwd=self.cwd,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError as e:
                raise EngineError(f"Failed to run {self.tsc_path}: {e}") from e

    def _read_source(self, file_name: str) -> SourceFile:
        source = self._sources.get(file_name)
        if source is None:
            try:
                with open(self._absolute(file_name), "r", encoding="utf-8") as f:
                    text = f.read()
            except OSError:
                text = ""
            source = SourceFile(file_name=file_name, text=text)
            self._sources[file_name] = source
        return source

    def _check_crash(self, result: subprocess.CompletedProcess, output: TscOutput) -> None:
        known = (EXIT_SUCCESS, EXIT_OUTPUTS_GENERATED, *EXIT_OUTPUTS_SKIPPED)
        if result.returncode not in known and not output.diagnostics:
            error_msg = f"tsc failed with exit code {result.returncode}"
            details = result.stderr or "\n".join(output.other_lines)
            if details:
                error_msg += f": {details[:500]}"
            raise EngineError(error_msg)

    def _compile(self) -> TscOutput:
        if self._output is None:
            result = self._invoke()
            output = parse_tsc_output(result.stdout, self._read_source)
            self._check_crash(result, output)
            self._output = output
            self._returncode = result.returncode
        return self._output

    def get_pre_emit_diagnostics(self) -> list[Diagnostic]:
        return [d for d in self._compile().diagnostics if d.code not in EMIT_DIAGNOSTIC_CODES]

    def emit(self) -> EmitResult:
        output = self._compile()
        skipped = self._returncode in EXIT_OUTPUTS_SKIPPED or bool(self.options.get("noEmit"))
        return EmitResult(
            emit_skipped=skipped,
            diagnostics=[d for d in output.diagnostics if d.code in EMIT_DIAGNOSTIC_CODES],
            emitted_files=list(output.emitted_files) if self.options.get("listEmittedFiles") else None,
        )

    def get_source_files(self) -> list[SourceFile]:
        # tsc exits 1 on any diagnostic but still lists the program's files
        result = self._invoke("--listFilesOnly")
        output = parse_tsc_output(result.stdout, self._read_source)
        self._check_crash(result, output)
        if output.diagnostics:
            logger.debug(f"Listed files with {len(output.diagnostics)} diagnostics")
        return [SourceFile(file_name=line) for line in output.other_lines]


class TscEngine(CompilationEngine):
    """
    Compilation engine backed by the tsc executable.

    Args:
        tsc_path: Explicit tsc executable; located with find_tsc() if omitted
        cwd: Directory relative root files and options are resolved against
            (defaults to the process working directory)
    """

    def __init__(self, tsc_path: Optional[str] = None, cwd: Optional[Union[str, Path]] = None):
        self.cwd = os.path.abspath(cwd) if cwd else os.getcwd()
        self.tsc_path = tsc_path or find_tsc(self.cwd)
        if not self.tsc_path:
            raise EngineNotFoundError(
                "Cannot find tsc. Install typescript in the project "
                f"(npm install --save-dev typescript) or set {TSC_ENV_VAR}"
            )

    def create_program(self, root_names: list[str], options: dict[str, Any]) -> TscProgram:
        return TscProgram(self.tsc_path, root_names, options, self.cwd)
