import pytest

from tsorchestra.engine import CompilationEngine, Program
from tsorchestra.errors import EngineError
from tsorchestra.schemas import Diagnostic, EmitResult, SourceFile


class FakeProgram(Program):
    """In-memory program reporting whatever its engine was configured with."""

    def __init__(self, engine, root_names, options):
        super().__init__(root_names, options)
        self.engine = engine

    def emit(self):
        self.engine.calls.append("emit")
        emitted = self.engine.emitted_files
        return EmitResult(
            emit_skipped=self.engine.emit_skipped,
            diagnostics=list(self.engine.emit_diagnostics),
            emitted_files=list(emitted) if emitted is not None and self.options.get("listEmittedFiles") else None,
        )

    def get_pre_emit_diagnostics(self):
        self.engine.calls.append("pre_emit")
        return list(self.engine.pre_emit_diagnostics)

    def get_source_files(self):
        self.engine.calls.append("source_files")
        if self.engine.source_error:
            raise EngineError(self.engine.source_error)
        return [SourceFile(file_name=f) for f in self.engine.source_files]


class FakeEngine(CompilationEngine):
    def __init__(
        self,
        emitted_files=None,
        pre_emit_diagnostics=None,
        emit_diagnostics=None,
        emit_skipped=False,
        source_files=None,
        source_error=None,
    ):
        self.emitted_files = emitted_files
        self.pre_emit_diagnostics = pre_emit_diagnostics or []
        self.emit_diagnostics = emit_diagnostics or []
        self.emit_skipped = emit_skipped
        self.source_files = source_files or []
        self.source_error = source_error
        self.programs = []
        self.calls = []

    def create_program(self, root_names, options):
        program = FakeProgram(self, root_names, options)
        self.programs.append(program)
        return program


def located(file_name, text, needle, message, code=2322):
    """A diagnostic pointing at the first occurrence of `needle` in `text`."""
    return Diagnostic(
        message_text=message,
        file=SourceFile(file_name=file_name, text=text),
        start=text.index(needle),
        length=len(needle),
        code=code,
    )


@pytest.fixture
def fake_engine():
    return FakeEngine


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def log(self, message):
        self.messages.append(message)


@pytest.fixture
def recording_logger():
    return RecordingLogger()
