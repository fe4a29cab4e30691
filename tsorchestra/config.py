"""
Compiler configuration for tsorchestra.

Loads tsconfig.json from the working directory, or falls back to the
built-in default options when there is none. A missing config file is a
supported state, not an error.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from .errors import ConfigParseError, ConfigValidationError
from .tsconfig import parse_config_file_text_to_json, parse_json_config_file_content

_log = logging.getLogger(__name__)

DEFAULT_TSCONFIG_FILE = "tsconfig.json"


class PluginLogger(Protocol):
    """Optional logging capability injected by the caller."""

    def log(self, message: str) -> None:
        ...


def make_default_typescript_config() -> dict[str, Any]:
    """Return a fresh copy of the options used when no tsconfig.json exists."""
    return {
        "module": "commonjs",
        "target": "es5",
        "lib": ["es2020"],
        "rootDir": "./",
        "allowJs": True,
        "checkJs": True,
        "strict": True,
        "noImplicitAny": True,
        "strictNullChecks": True,
        "strictFunctionTypes": True,
        "strictBindCallApply": True,
        "strictPropertyInitialization": True,
        "noImplicitThis": True,
        "alwaysStrict": True,
        "noUnusedLocals": True,
        "noUnusedParameters": True,
        "noImplicitReturns": True,
        "noFallthroughCasesInSwitch": True,
        "moduleResolution": "node",
        "esModuleInterop": True,
        "experimentalDecorators": True,
        "emitDecoratorMetadata": True,
        "forceConsistentCasingInFileNames": True,
        "preserveConstEnums": True,
        "sourceMap": True,
    }


def _format_errors(errors) -> str:
    return "; ".join(str(e) for e in errors)


def get_typescript_config(
    cwd: Union[str, Path],
    tsconfig_file_path: str = DEFAULT_TSCONFIG_FILE,
    logger: Optional[PluginLogger] = None,
) -> dict[str, Any]:
    """
    Resolve compiler options for a working directory.

    Args:
        cwd: Working directory; always becomes the options' rootDir when a
            config file is used
        tsconfig_file_path: Config file name, relative to cwd
        logger: Optional capability with a log(message) method

    Returns:
        Flat compiler options

    Raises:
        ConfigParseError: If the config text cannot be parsed
        ConfigValidationError: If expanding the config reports errors
    """
    cwd = str(cwd)
    config_file_path = os.path.join(cwd, tsconfig_file_path)

    if not os.path.exists(config_file_path):
        _log.debug(f"No config at {config_file_path}, using default options")
        return make_default_typescript_config()

    with open(config_file_path, "r", encoding="utf-8") as f:
        config_file_text = f.read()

    config, error = parse_config_file_text_to_json(config_file_path, config_file_text)
    if error is not None:
        raise ConfigParseError(f"Invalid config file {config_file_path}: {error}", diagnostic=error)

    parsed = parse_json_config_file_content(
        config,
        Path(config_file_path).parent,
        config_file_name=config_file_path,
    )
    if parsed.errors:
        raise ConfigValidationError(
            f"Invalid config file {config_file_path}: {_format_errors(parsed.errors)}",
            errors=parsed.errors,
        )

    if logger:
        logger.log(f'Using local tsconfig.json at "{config_file_path}"')

    # rootDir from the file never wins over the working directory
    root_dir = parsed.options.get("rootDir")
    if root_dir and os.path.abspath(root_dir) != os.path.abspath(cwd) and logger:
        logger.log('Warning: "rootDir" from local tsconfig.json is overriden')
    parsed.options["rootDir"] = cwd

    return parsed.options
