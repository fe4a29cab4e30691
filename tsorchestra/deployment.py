"""
Deployment configuration - the functions mapping from serverless.yml.

Only `functions.<name>.handler` is read; everything else is carried along
in HandlerSpec.extra untouched.
"""

from pathlib import Path
from typing import Union

import yaml

from .errors import ConfigError
from .schemas import HandlerSpec

DEFAULT_DEPLOYMENT_FILE = "serverless.yml"


def load_deployment_config(path: Union[str, Path]) -> dict:
    """
    Load and parse a deployment YAML file.

    Raises:
        ConfigError: If the file is missing, empty or not valid YAML
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Deployment config not found: {path}")

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {path}: {e}")

    if not config:
        raise ConfigError(f"Deployment config is empty: {path}")
    if not isinstance(config, dict):
        raise ConfigError(f"Deployment config must be a mapping: {path}")
    return config


def get_provider(config: dict) -> str:
    """Provider name from `provider` (a string or a mapping with `name`)."""
    provider = config.get("provider", "aws")
    if isinstance(provider, dict):
        provider = provider.get("name", "aws")
    return str(provider)


def parse_functions(config: dict, path: Union[str, Path]) -> dict[str, HandlerSpec]:
    """
    Build HandlerSpecs from a loaded deployment config, in file order.

    Raises:
        ConfigError: If a function entry is malformed
    """
    functions = config.get("functions") or {}
    if not isinstance(functions, dict):
        raise ConfigError(f"'functions' must be a mapping in {path}")

    specs = {}
    for name, data in functions.items():
        try:
            specs[name] = HandlerSpec.from_dict(name, data)
        except ValueError as e:
            raise ConfigError(f"{path}: {e}")
    return specs

