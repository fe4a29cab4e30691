"""
Entry-point resolution - which source files to hand to the compiler.

Handlers are "<fileStem>.<exportName>" strings. The exported name is the
last '.'-separated segment, and the file stem is everything before its
rightmost occurrence, so a file may share its name with its export
("users/users.users" -> "users/users.ts").

The Google provider ignores handlers and uses package.json:main instead.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .errors import HandlerFileMissing, HandlerNameUnresolvable, ManifestEntrypointMissing

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"
PACKAGE_MANIFEST = "package.json"
DEFAULT_GOOGLE_ENTRYPOINT = "index.ts"
SOURCE_EXTENSIONS = ("ts", "js")


def _handler_of(fn: Any) -> str:
    """Read `handler` from a HandlerSpec-like object or a plain mapping."""
    if isinstance(fn, Mapping):
        return fn["handler"]
    return fn.handler


def _google_entrypoint(cwd: str) -> Optional[str]:
    """
    Entry point from package.json:main, or None when there is no manifest.

    A main of "dist/app.js" is compiled from "dist/app.ts".
    """
    package_file_path = os.path.join(cwd, PACKAGE_MANIFEST)
    if not os.path.exists(package_file_path):
        return None

    with open(package_file_path, "r", encoding="utf-8") as f:
        package_file = json.load(f)

    main = package_file.get("main")
    if main:
        main = main[:-3] + ".ts" if main.endswith(".js") else main
    else:
        main = DEFAULT_GOOGLE_ENTRYPOINT

    if not os.path.exists(os.path.join(cwd, main)):
        logger.error(f"Cannot locate entrypoint, {main} not found")
        raise ManifestEntrypointMissing(main)

    return main


def split_handler(handler: str) -> tuple[str, str]:
    """
    Split a handler string into (file stem, exported name).

    The stem keeps its trailing '.', e.g. "src/a.b.handler" gives
    ("src/a.b.", "handler").

    Raises:
        HandlerNameUnresolvable: If there is no name after the final '.'
    """
    if "." not in handler:
        raise HandlerNameUnresolvable(handler)
    fn_name = handler.split(".")[-1]
    if not fn_name:
        raise HandlerNameUnresolvable(handler)
    # split at the last occurrence only; the stem may contain fn_name too
    return handler[: handler.rfind(fn_name)], fn_name


def resolve_handler_file(cwd: str, handler: str) -> str:
    """
    Find the source file for one handler, preferring .ts over .js.

    Raises:
        HandlerNameUnresolvable: If the handler has no exported name
        HandlerFileMissing: If neither candidate file exists
    """
    file_name, _ = split_handler(handler)
    for ext in SOURCE_EXTENSIONS:
        candidate = file_name + ext
        if os.path.exists(os.path.join(cwd, candidate)):
            return candidate

    logger.error(f"Cannot locate handler - {file_name[:-1]} not found")
    raise HandlerFileMissing(file_name[:-1])


def extract_file_names(
    cwd: Union[str, Path],
    provider: str,
    functions: Optional[Mapping[str, Any]] = None,
) -> list[str]:
    """
    Resolve the entry points to compile.

    Args:
        cwd: Working directory handler paths are relative to
        provider: Deployment target identifier ("aws", "google", ...)
        functions: Function name -> HandlerSpec (or mapping with "handler")

    Returns:
        Entry point paths, in the order of `functions`

    Raises:
        ResolutionError: On the first handler that cannot be resolved
    """
    cwd = str(cwd)

    if provider == GOOGLE_PROVIDER:
        main = _google_entrypoint(cwd)
        if main is not None:
            return [main]

    return [
        resolve_handler_file(cwd, _handler_of(fn))
        for fn in (functions or {}).values()
    ]
