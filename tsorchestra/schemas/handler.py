"""
HandlerSpec schema - one deployable unit from the deployment config.

The handler string has the form "<fileStem>.<exportName>", e.g.
"src/users.create" names the export `create` in src/users.ts.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HandlerSpec:
    """
    A named function entry from the deployment configuration.

    Attributes:
        name: Function name (key in the deployment mapping)
        handler: Dotted handler specifier
        extra: Any other fields the deployment config carries
    """
    name: str
    handler: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "HandlerSpec":
        """Build a HandlerSpec from a deployment config entry."""
        if not isinstance(data, dict):
            raise ValueError(f"Function '{name}' must be a mapping, got {type(data).__name__}")
        if "handler" not in data:
            raise ValueError(f"Function '{name}' is missing 'handler'")
        return cls(
            name=name,
            handler=str(data["handler"]),
            extra={k: v for k, v in data.items() if k != "handler"},
        )
