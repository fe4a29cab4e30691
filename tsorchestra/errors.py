"""
Error classes for tsorchestra.

Every failure here reflects structurally invalid input (bad path, bad
config, bad handler spec) or a compile the engine refused to emit. None of
them are retried:
- ResolutionError: an entry point could not be resolved
- ConfigError: the project config could not be parsed or validated
- CompilationFailedError: the engine skipped emit
- EngineError: the compilation engine could not be run

Error handling contract:
- Errors are exceptions, not values
- Diagnostics are printed before CompilationFailedError is raised
"""


class TsorchestraError(Exception):
    """Base exception for tsorchestra."""
    pass


class ResolutionError(TsorchestraError):
    """Entry-point resolution failed; no partial list is produced."""
    pass


class ManifestEntrypointMissing(ResolutionError):
    """The package.json main file does not exist on disk."""

    def __init__(self, main: str):
        self.main = main
        super().__init__(f"Cannot locate entrypoint, {main} not found")


class HandlerNameUnresolvable(ResolutionError):
    """The handler string has no exported name after its final '.'."""

    def __init__(self, handler: str):
        self.handler = handler
        super().__init__(
            f"Couldn't get exported function name; missing name after '.' in {handler}"
        )


class HandlerFileMissing(ResolutionError):
    """Neither a .ts nor a .js file exists for a handler's file stem."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(
            f"Cannot locate handler - {file_name} not found. "
            "Please ensure handlers exists with ext .ts or .js"
        )


class ConfigError(TsorchestraError):
    """Configuration could not be loaded."""
    pass


class ConfigParseError(ConfigError):
    """
    Raw parse of a config file failed.

    Attributes:
        diagnostic: The Diagnostic reported by the parser
    """

    def __init__(self, message: str, diagnostic=None):
        self.diagnostic = diagnostic
        super().__init__(message)


class ConfigValidationError(ConfigError):
    """
    Normalizing a parsed config reported errors.

    Attributes:
        errors: Every Diagnostic reported, not just the first
    """

    def __init__(self, message: str, errors=None):
        self.errors = list(errors or [])
        super().__init__(message)


class CompilationFailedError(TsorchestraError):
    """
    The compilation engine skipped emit.

    Attributes:
        diagnostics: All diagnostics collected for the failed compile
    """

    def __init__(self, message: str = "Typescript compilation failed", diagnostics=None):
        self.diagnostics = list(diagnostics or [])
        super().__init__(message)


class EngineError(TsorchestraError):
    """The compilation engine could not be run or crashed."""
    pass


class EngineNotFoundError(EngineError):
    """No compiler executable could be located."""
    pass
