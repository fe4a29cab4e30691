"""
Project-config dialect - reading tsconfig.json files.

Two steps, mirroring how the TypeScript compiler reads its own config:

1. parse_config_file_text_to_json: raw parse of the JSON-with-comments text
   (// and /* */ comments, trailing commas). Reports a single Diagnostic.
2. parse_json_config_file_content: expands the raw object into flat compiler
   options and an input file list:
   - resolves `extends` (paths and node_modules packages, chains, arrays)
   - canonicalizes option names and enum values, checks value types;
     options it does not declare are passed through for the engine to judge
   - resolves path-valued options against the declaring file's directory
   - expands `files` / `include` / `exclude`
   Reports every problem found, not just the first.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

from .schemas import Diagnostic, ParsedConfig, SourceFile

logger = logging.getLogger(__name__)


# Enum-valued options: accepted spelling -> canonical value
TARGETS = {
    "es3": "es3", "es5": "es5", "es6": "es2015", "es2015": "es2015",
    "es2016": "es2016", "es2017": "es2017", "es2018": "es2018",
    "es2019": "es2019", "es2020": "es2020", "es2021": "es2021",
    "es2022": "es2022", "es2023": "es2023", "es2024": "es2024",
    "esnext": "esnext",
}

MODULES = {
    "none": "none", "commonjs": "commonjs", "amd": "amd", "system": "system",
    "umd": "umd", "es6": "es2015", "es2015": "es2015", "es2020": "es2020",
    "es2022": "es2022", "esnext": "esnext", "node16": "node16",
    "node18": "node18", "node20": "node20", "nodenext": "nodenext",
    "preserve": "preserve",
}

MODULE_RESOLUTIONS = {
    "classic": "classic", "node": "node", "node10": "node", "nodejs": "node",
    "node16": "node16", "nodenext": "nodenext", "bundler": "bundler",
}

JSX = {
    "preserve": "preserve", "react": "react", "react-native": "react-native",
    "react-jsx": "react-jsx", "react-jsxdev": "react-jsxdev",
}

NEW_LINES = {"crlf": "crlf", "lf": "lf"}

MODULE_DETECTION = {"auto": "auto", "legacy": "legacy", "force": "force"}

IMPORTS_NOT_USED_AS_VALUES = {"remove": "remove", "preserve": "preserve", "error": "error"}

BOOLEAN_OPTIONS = [
    "allowArbitraryExtensions", "allowImportingTsExtensions", "allowJs",
    "allowSyntheticDefaultImports", "allowUmdGlobalAccess",
    "allowUnreachableCode", "allowUnusedLabels", "alwaysStrict", "checkJs",
    "composite", "declaration", "declarationMap", "diagnostics",
    "disableSizeLimit", "downlevelIteration", "emitBOM",
    "emitDeclarationOnly", "emitDecoratorMetadata", "erasableSyntaxOnly",
    "esModuleInterop", "exactOptionalPropertyTypes",
    "experimentalDecorators", "extendedDiagnostics",
    "forceConsistentCasingInFileNames", "importHelpers", "incremental",
    "inlineSourceMap", "inlineSources", "isolatedDeclarations",
    "isolatedModules", "keyofStringsOnly", "libReplacement",
    "listEmittedFiles", "listFiles", "noEmit", "noEmitHelpers",
    "noEmitOnError", "noErrorTruncation", "noFallthroughCasesInSwitch",
    "noImplicitAny", "noImplicitOverride", "noImplicitReturns",
    "noImplicitThis", "noImplicitUseStrict", "noLib",
    "noPropertyAccessFromIndexSignature", "noResolve",
    "noStrictGenericChecks", "noUncheckedIndexedAccess",
    "noUncheckedSideEffectImports", "noUnusedLocals", "noUnusedParameters",
    "preserveConstEnums", "preserveSymlinks", "preserveValueImports",
    "preserveWatchOutput", "pretty", "removeComments", "resolveJsonModule",
    "resolvePackageJsonExports", "resolvePackageJsonImports",
    "rewriteRelativeImportExtensions", "skipDefaultLibCheck",
    "skipLibCheck", "sourceMap", "strict", "strictBindCallApply",
    "strictBuiltinIteratorReturn", "strictFunctionTypes",
    "strictNullChecks", "strictPropertyInitialization", "stripInternal",
    "suppressExcessPropertyErrors", "suppressImplicitAnyIndexErrors",
    "traceResolution", "useDefineForClassFields",
    "useUnknownInCatchVariables", "verbatimModuleSyntax",
]

# Options holding a single file system path, resolved against the
# directory of the config file that declares them
PATH_OPTIONS = [
    "baseUrl", "declarationDir", "outDir", "outFile", "rootDir",
    "tsBuildInfoFile",
]

PATH_LIST_OPTIONS = ["rootDirs", "typeRoots"]

STRING_OPTIONS = [
    "charset", "ignoreDeprecations", "jsxFactory", "jsxFragmentFactory",
    "jsxImportSource", "mapRoot", "reactNamespace", "sourceRoot",
]

STRING_LIST_OPTIONS = ["customConditions", "lib", "moduleSuffixes", "types"]

NUMBER_OPTIONS = ["maxNodeModuleJsDepth"]

OBJECT_OPTIONS = ["paths"]

LIST_OPTIONS = ["plugins"]


def _build_option_declarations() -> dict[str, tuple[str, Optional[dict[str, str]]]]:
    declarations: dict[str, tuple[str, Optional[dict[str, str]]]] = {}
    for name in BOOLEAN_OPTIONS:
        declarations[name] = ("boolean", None)
    for name in PATH_OPTIONS:
        declarations[name] = ("path", None)
    for name in PATH_LIST_OPTIONS:
        declarations[name] = ("path_list", None)
    for name in STRING_OPTIONS:
        declarations[name] = ("string", None)
    for name in STRING_LIST_OPTIONS:
        declarations[name] = ("string_list", None)
    for name in NUMBER_OPTIONS:
        declarations[name] = ("number", None)
    for name in OBJECT_OPTIONS:
        declarations[name] = ("object", None)
    for name in LIST_OPTIONS:
        declarations[name] = ("list", None)
    declarations["target"] = ("enum", TARGETS)
    declarations["module"] = ("enum", MODULES)
    declarations["moduleResolution"] = ("enum", MODULE_RESOLUTIONS)
    declarations["jsx"] = ("enum", JSX)
    declarations["newLine"] = ("enum", NEW_LINES)
    declarations["moduleDetection"] = ("enum", MODULE_DETECTION)
    declarations["importsNotUsedAsValues"] = ("enum", IMPORTS_NOT_USED_AS_VALUES)
    return declarations


OPTION_DECLARATIONS = _build_option_declarations()

# Lowercased name -> canonical name, for case-insensitive lookups
OPTION_NAME_ALIASES = {name.lower(): name for name in OPTION_DECLARATIONS}

TYPE_NAMES = {
    "boolean": "boolean",
    "path": "string",
    "string": "string",
    "number": "number",
    "object": "object",
    "path_list": "Array",
    "string_list": "Array",
    "list": "Array",
}

DEFAULT_EXCLUDES = ["node_modules", "bower_components", "jspm_packages"]

TS_EXTENSIONS = [".ts", ".tsx", ".d.ts"]
JS_EXTENSIONS = [".js", ".jsx"]


def _error(code: int, message: str, file: Optional[SourceFile] = None,
           start: Optional[int] = None) -> Diagnostic:
    return Diagnostic(message_text=message, file=file, start=start, category="error", code=code)


# ---------------------------------------------------------------------------
# Raw text parse
# ---------------------------------------------------------------------------

class _UnterminatedComment(ValueError):
    def __init__(self, pos: int):
        self.pos = pos
        super().__init__("'*/' expected.")


def strip_json_comments(text: str) -> str:
    """
    Blank out comments and trailing commas in JSON-with-comments text.

    Removed characters become spaces (newlines are kept) so offsets and
    line numbers in later parse errors still point into the original text.
    """
    chars = list(text)
    length = len(chars)
    i = 0
    in_string = False
    while i < length:
        ch = chars[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            i += 1
        elif ch == "/" and i + 1 < length and chars[i + 1] == "/":
            while i < length and chars[i] not in "\r\n":
                chars[i] = " "
                i += 1
        elif ch == "/" and i + 1 < length and chars[i + 1] == "*":
            start = i
            chars[i] = chars[i + 1] = " "
            i += 2
            while i < length and not (chars[i] == "*" and i + 1 < length and chars[i + 1] == "/"):
                if chars[i] not in "\r\n":
                    chars[i] = " "
                i += 1
            if i >= length:
                raise _UnterminatedComment(start)
            chars[i] = chars[i + 1] = " "
            i += 2
        else:
            i += 1

    # Trailing commas: a ',' followed only by whitespace before '}' or ']'
    in_string = False
    i = 0
    while i < length:
        ch = chars[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < length and chars[j].isspace():
                j += 1
            if j < length and chars[j] in "}]":
                chars[i] = " "
        i += 1

    return "".join(chars)


def parse_config_file_text_to_json(
    file_name: str,
    text: str,
) -> tuple[Optional[Any], Optional[Diagnostic]]:
    """
    Parse the text of a config file.

    Args:
        file_name: Path of the file (used in the diagnostic)
        text: File contents

    Returns:
        (config, None) on success; (None, Diagnostic) on a parse error or
        when the top-level value is not an object
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    source = SourceFile(file_name=str(file_name), text=text)

    if not text.strip():
        return {}, None

    try:
        cleaned = strip_json_comments(text)
    except _UnterminatedComment as e:
        return None, _error(1010, str(e), source, e.pos)

    try:
        config = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return None, _error(1005, f"{e.msg}.", source, e.pos)

    if not isinstance(config, dict):
        start = len(cleaned) - len(cleaned.lstrip())
        return None, _error(
            5092, "The root value of a 'tsconfig.json' file must be an object.", source, start
        )
    return config, None


def read_config_file(path: Path) -> tuple[Optional[Any], Optional[Diagnostic]]:
    """Read and raw-parse a config file from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return None, _error(5083, f"Cannot read file '{path}': {e.strerror}.")
    return parse_config_file_text_to_json(str(path), text)


# ---------------------------------------------------------------------------
# Compiler options
# ---------------------------------------------------------------------------

def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _normalize_path(base_dir: Path, value: str) -> str:
    return os.path.normpath(os.path.join(str(base_dir), value))


def convert_compiler_options(
    json_options: Any,
    base_dir: Path,
) -> tuple[dict[str, Any], list[Diagnostic]]:
    """
    Convert a raw `compilerOptions` object into canonical options.

    Args:
        json_options: Value of `compilerOptions` from a config file
        base_dir: Directory of the config file that declared the options

    Returns:
        (options, errors). A null value is kept as None so it can clear an
        inherited setting during extends merging.
    """
    options: dict[str, Any] = {}
    errors: list[Diagnostic] = []

    if json_options is None:
        return options, errors
    if not isinstance(json_options, dict):
        errors.append(_error(5024, "Compiler option 'compilerOptions' requires a value of type object."))
        return options, errors

    for key, value in json_options.items():
        name = key if key in OPTION_DECLARATIONS else OPTION_NAME_ALIASES.get(key.lower())
        if name is None:
            # undeclared names go to the engine as written; it rejects unknown ones
            logger.debug(f"Passing compiler option '{key}' through unchecked")
            options[key] = value
            continue

        if value is None:
            options[name] = None
            continue

        kind, choices = OPTION_DECLARATIONS[name]
        if kind == "enum":
            canonical = choices.get(value.lower()) if isinstance(value, str) else None
            if canonical is None:
                allowed = ", ".join(f"'{c}'" for c in choices)
                errors.append(_error(6046, f"Argument for '--{name}' option must be: {allowed}."))
                continue
            options[name] = canonical
        elif kind == "boolean" and isinstance(value, bool):
            options[name] = value
        elif kind == "number" and isinstance(value, (int, float)) and not isinstance(value, bool):
            options[name] = value
        elif kind == "string" and isinstance(value, str):
            options[name] = value
        elif kind == "path" and isinstance(value, str):
            options[name] = _normalize_path(base_dir, value)
        elif kind == "path_list" and _is_string_list(value):
            options[name] = [_normalize_path(base_dir, v) for v in value]
        elif kind == "string_list" and _is_string_list(value):
            options[name] = [v.lower() for v in value] if name == "lib" else list(value)
        elif kind == "object" and isinstance(value, dict):
            options[name] = value
        elif kind == "list" and isinstance(value, list):
            options[name] = value
        else:
            errors.append(_error(
                5024,
                f"Compiler option '{name}' requires a value of type {TYPE_NAMES[kind]}.",
            ))

    return options, errors


# ---------------------------------------------------------------------------
# extends
# ---------------------------------------------------------------------------

def _is_relative_or_absolute(spec: str) -> bool:
    return spec.startswith("./") or spec.startswith("../") or os.path.isabs(spec)


def resolve_extends_path(extended: str, base_dir: Path) -> Optional[Path]:
    """
    Locate the config file named by an `extends` entry.

    Relative and absolute paths are resolved against `base_dir`, with
    ".json" appended when the bare path does not exist. Other names are
    looked up in node_modules directories from `base_dir` upward.
    """
    if _is_relative_or_absolute(extended):
        candidate = base_dir / extended
        if candidate.is_file():
            return candidate
        if not extended.endswith(".json"):
            with_ext = base_dir / f"{extended}.json"
            if with_ext.is_file():
                return with_ext
        return None

    for directory in [base_dir, *base_dir.parents]:
        package_dir = directory / "node_modules" / extended
        candidates = [package_dir, Path(f"{package_dir}.json")]
        manifest = package_dir / "package.json"
        if manifest.is_file():
            try:
                tsconfig_field = json.loads(manifest.read_text(encoding="utf-8")).get("tsconfig")
            except (OSError, ValueError, AttributeError):
                tsconfig_field = None
            if isinstance(tsconfig_field, str):
                candidates.append(package_dir / tsconfig_field)
        candidates.append(package_dir / "tsconfig.json")
        for candidate in candidates:
            if candidate.is_file():
                return candidate
    return None


def absolute_paths(paths: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """
    Make relative `paths` targets absolute against `base_dir`.

    Without baseUrl, tsc resolves targets relative to the config file that
    declared them, which is not the project file the engine compiles from.
    """
    anchored: dict[str, Any] = {}
    for pattern, targets in paths.items():
        if not _is_string_list(targets):
            anchored[pattern] = targets
            continue
        anchored[pattern] = [
            t if os.path.isabs(t) else _normalize_path(base_dir, t) for t in targets
        ]
    return anchored


class _ConfigLayer:
    """Options and file specs accumulated from one config and its bases."""

    def __init__(self):
        self.options: dict[str, Any] = {}
        # key -> (patterns, directory they are relative to)
        self.specs: dict[str, tuple[list[str], Path]] = {}
        # directory of the config that declared `paths`
        self.paths_base: Optional[Path] = None

    def merge(self, other: "_ConfigLayer") -> None:
        self.options.update(other.options)
        self.specs.update(other.specs)
        if "paths" in other.options:
            self.paths_base = other.paths_base


def _parse_layer(
    config: dict[str, Any],
    base_dir: Path,
    errors: list[Diagnostic],
    resolution_stack: list[str],
) -> _ConfigLayer:
    layer = _ConfigLayer()

    extends = config.get("extends")
    if extends is not None:
        if isinstance(extends, str):
            extended_names = [extends]
        elif _is_string_list(extends):
            extended_names = extends
        else:
            errors.append(_error(5024, "Compiler option 'extends' requires a value of type string or Array."))
            extended_names = []

        for extended in extended_names:
            path = resolve_extends_path(extended, base_dir)
            if path is None:
                errors.append(_error(6053, f"File '{extended}' not found."))
                continue
            key = str(path.resolve())
            if key in resolution_stack:
                chain = " -> ".join(resolution_stack + [key])
                errors.append(_error(18000, f"Circularity detected while resolving configuration: {chain}"))
                continue
            logger.debug(f"Extending config from {key}")
            base_config, error = read_config_file(path)
            if error is not None:
                errors.append(error)
                continue
            layer.merge(_parse_layer(base_config, path.parent, errors, resolution_stack + [key]))

    own_options, option_errors = convert_compiler_options(config.get("compilerOptions"), base_dir)
    errors.extend(option_errors)
    for name, value in own_options.items():
        if value is None:
            layer.options.pop(name, None)
        else:
            layer.options[name] = value
    if own_options.get("paths") is not None:
        layer.paths_base = base_dir

    for key in ("files", "include", "exclude"):
        if key not in config:
            continue
        value = config[key]
        if _is_string_list(value):
            layer.specs[key] = (list(value), base_dir)
        else:
            errors.append(_error(5024, f"Compiler option '{key}' requires a value of type Array."))

    return layer


# ---------------------------------------------------------------------------
# files / include / exclude
# ---------------------------------------------------------------------------

def _has_wildcard(component: str) -> bool:
    return "*" in component or "?" in component


def _component_regex(component: str) -> str:
    out = r"(?!\.)" if component[:1] in ("*", "?") else ""
    for ch in component:
        if ch == "*":
            out += "[^/]*"
        elif ch == "?":
            out += "[^/]"
        else:
            out += re.escape(ch)
    return out


def _absolute_spec(spec: str, base_dir: Path) -> str:
    return _normalize_path(base_dir, spec).replace(os.sep, "/")


def spec_to_regex(spec: str, base_dir: Path, usage: str) -> re.Pattern:
    """
    Compile an include/exclude spec into a regex over absolute posix paths.

    `*` and `?` match within one path segment, `**` matches any number of
    directories. Wildcards do not match names starting with '.'. An include
    spec whose last segment has no wildcard and no extension names a
    directory and matches everything below it; exclude specs always also
    match everything below the matched path.
    """
    components = _absolute_spec(spec, base_dir).split("/")
    last = components[-1]
    if usage == "include" and not _has_wildcard(last) and "." not in last:
        components += ["**", "*"]

    pattern = re.escape(components[0])
    for component in components[1:]:
        if component == "**":
            pattern += r"(?:/(?!\.)[^/]+)*"
        else:
            pattern += "/" + _component_regex(component)

    if usage == "exclude":
        pattern += "(?:/.*)?"
    return re.compile(f"^{pattern}$")


def _walk_root(spec: str, base_dir: Path) -> str:
    """The deepest directory of a spec that holds no wildcard."""
    components = _absolute_spec(spec, base_dir).split("/")
    fixed = []
    for component in components[:-1]:
        if _has_wildcard(component):
            break
        fixed.append(component)
    else:
        if not _has_wildcard(components[-1]) and "." not in components[-1]:
            fixed.append(components[-1])
    return "/".join(fixed) or "/"


def _supported_extension(file_name: str, extensions: list[str]) -> Optional[str]:
    # ".d.ts" before ".ts" so declaration files keep their own priority
    for ext in sorted(extensions, key=len, reverse=True):
        if file_name.endswith(ext):
            return ext
    return None


def match_files(
    include: list[str],
    include_dir: Path,
    exclude: list[str],
    exclude_dir: Path,
    extensions: list[str],
) -> list[str]:
    """
    Expand include specs into a sorted, de-duplicated file list.

    Where several files share a stem, only the highest-priority extension
    is kept (.ts/.tsx over .d.ts over .js/.jsx).
    """
    include_res = [spec_to_regex(s, include_dir, "include") for s in include]
    exclude_res = [spec_to_regex(s, exclude_dir, "exclude") for s in exclude]

    def excluded(path: str) -> bool:
        return any(r.match(path) for r in exclude_res)

    priority = {ext: rank for rank, ext in enumerate(extensions)}
    by_stem: dict[str, tuple[int, str]] = {}
    seen_roots: set[str] = set()

    for spec in include:
        root = _walk_root(spec, include_dir)
        if root in seen_roots or not os.path.isdir(root):
            continue
        seen_roots.add(root)
        for dirpath, dirnames, filenames in os.walk(root):
            dirpath_posix = dirpath.replace(os.sep, "/")
            dirnames[:] = sorted(
                d for d in dirnames if not excluded(f"{dirpath_posix}/{d}")
            )
            for filename in sorted(filenames):
                path = f"{dirpath_posix}/{filename}"
                ext = _supported_extension(filename, extensions)
                if ext is None or excluded(path):
                    continue
                if not any(r.match(path) for r in include_res):
                    continue
                stem = path[: -len(ext)]
                rank = 0 if ext in (".ts", ".tsx") else priority[ext]
                current = by_stem.get(stem)
                if current is None or rank < current[0]:
                    by_stem[stem] = (rank, path)

    return sorted(path for _, path in by_stem.values())


def _get_file_names(
    layer: _ConfigLayer,
    options: dict[str, Any],
    base_dir: Path,
    config_file_name: Optional[str],
    errors: list[Diagnostic],
) -> list[str]:
    files_spec = layer.specs.get("files")
    include_spec = layer.specs.get("include")
    exclude_spec = layer.specs.get("exclude")
    config_name = config_file_name or "tsconfig.json"

    if files_spec is not None and not files_spec[0] and include_spec is None:
        errors.append(_error(18002, f"The 'files' list in config file '{config_name}' is empty."))
        return []

    if files_spec is None and include_spec is None:
        include_spec = (["**/*"], base_dir)

    if exclude_spec is None:
        excludes = list(DEFAULT_EXCLUDES)
        if options.get("outDir"):
            excludes.append(options["outDir"])
        exclude_spec = (excludes, base_dir)

    extensions = list(TS_EXTENSIONS)
    if options.get("allowJs"):
        extensions += JS_EXTENSIONS

    file_names: list[str] = []
    if files_spec is not None:
        file_names.extend(_normalize_path(files_spec[1], f) for f in files_spec[0])

    if include_spec is not None:
        literal = set(file_names)
        matched = match_files(include_spec[0], include_spec[1], exclude_spec[0], exclude_spec[1], extensions)
        file_names.extend(f for f in matched if f not in literal)

        if not file_names:
            errors.append(_error(
                18003,
                f"No inputs were found in config file '{config_name}'. "
                f"Specified 'include' paths were '{json.dumps(include_spec[0])}' "
                f"and 'exclude' paths were '{json.dumps(exclude_spec[0])}'.",
            ))

    return file_names


def parse_json_config_file_content(
    config: Any,
    base_dir: Path,
    config_file_name: Optional[str] = None,
) -> ParsedConfig:
    """
    Expand a raw config object into flat compiler options and input files.

    Args:
        config: Object returned by parse_config_file_text_to_json
        base_dir: Directory relative paths in `config` are resolved against
        config_file_name: Path of the config file, for extends cycle
            detection and messages

    Returns:
        ParsedConfig; `errors` lists every problem found
    """
    base_dir = Path(base_dir)
    errors: list[Diagnostic] = []

    if not isinstance(config, dict):
        errors.append(_error(5092, "The root value of a 'tsconfig.json' file must be an object."))
        return ParsedConfig(errors=errors)

    stack = [str(Path(config_file_name).resolve())] if config_file_name else []
    layer = _parse_layer(config, base_dir, errors, stack)
    if "paths" in layer.options and "baseUrl" not in layer.options:
        layer.options["paths"] = absolute_paths(layer.options["paths"], layer.paths_base or base_dir)
    file_names = _get_file_names(layer, layer.options, base_dir, config_file_name, errors)

    return ParsedConfig(
        options=layer.options,
        file_names=file_names,
        errors=errors,
        raw=config,
    )
