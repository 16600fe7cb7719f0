"""
agent.tools.base - Tool descriptors and the base tool interface.

A ToolDescriptor is what the registry stores and what the model sees:
name, natural-language description, parameter schema, and the callable.
BaseTool subclasses are a convenient way to build descriptors for tools
that carry their own state (calendar, outbox, memory index).
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, create_model

ParameterType = Literal["string", "integer", "number", "boolean", "array", "object"]

_PYTHON_TYPES: dict[str, type] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "array": list,
    "object": dict,
}

_TOOL_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass(frozen=True)
class ToolParameter:
    """Schema of one tool argument."""
    type: ParameterType = "string"
    description: str = ""
    required: bool = True


@dataclass(frozen=True)
class ToolDescriptor:
    """A named, schema-described callable the model may request.

    invoke:  Called with keyword arguments only. May be sync or async and
             should return a string (other values are rendered by the
             registry).
    """
    name: str
    description: str
    invoke: Callable[..., Any]
    parameters: Mapping[str, ToolParameter] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not _TOOL_NAME.match(self.name):
            raise ValueError(
                f"Invalid tool name {self.name!r}: use 1-64 letters, digits, '_' or '-'"
            )
        for param_name, param in self.parameters.items():
            if param.type not in _PYTHON_TYPES:
                raise ValueError(
                    f"Tool '{self.name}' parameter '{param_name}' has unsupported type {param.type!r}"
                )

    def build_arguments_model(self) -> type[BaseModel]:
        """Pydantic model used to validate and coerce call arguments."""
        fields: dict[str, Any] = {}
        for param_name, param in self.parameters.items():
            py_type = _PYTHON_TYPES[param.type]
            if param.required:
                fields[param_name] = (py_type, ...)
            else:
                fields[param_name] = (Optional[py_type], None)
        return create_model(
            f"{self.name}_arguments",
            __config__=ConfigDict(coerce_numbers_to_str=True),
            **fields,
        )

    def to_openai_schema(self) -> dict[str, Any]:
        """Render as a function-calling tool definition."""
        properties = {
            param_name: {"type": param.type, "description": param.description}
            for param_name, param in self.parameters.items()
        }
        required = [n for n, p in self.parameters.items() if p.required]
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }


class BaseTool(ABC):
    """Abstract base for stateful built-in tools."""

    name: str
    description: str
    parameters: Mapping[str, ToolParameter] = {}

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """Run the tool with validated keyword arguments."""
        ...

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            invoke=self.execute,
            parameters=dict(self.parameters),
        )
