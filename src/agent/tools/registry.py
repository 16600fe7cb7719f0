"""
agent.tools.registry - Tool registration, discovery, and invocation.

Central registry that holds the session's fixed tool set, renders it for
the model service, and invokes tools with validated arguments. Every
failure comes back as a ToolError subclass so the executor can feed it
into the conversation instead of crashing the loop.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ValidationError

from agent.tools.base import ToolDescriptor
from domain.exceptions import (
    DuplicateToolNameError,
    InvalidArgumentsError,
    ToolExecutionFailedError,
    UnknownToolError,
)

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Manages tool registration and invocation."""

    def __init__(self):
        self._tools: dict[str, ToolDescriptor] = {}
        self._argument_models: dict[str, type[BaseModel]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, descriptor: ToolDescriptor) -> None:
        """Register a tool. Names are unique; re-registration is rejected."""
        if descriptor.name in self._tools:
            raise DuplicateToolNameError(f"Tool '{descriptor.name}' is already registered")
        self._argument_models[descriptor.name] = descriptor.build_arguments_model()
        self._tools[descriptor.name] = descriptor
        logger.debug("Registered tool: %s", descriptor.name)

    def get(self, name: str) -> ToolDescriptor:
        """Get a tool by name."""
        if name not in self._tools:
            available = ", ".join(self._tools) or "none"
            raise UnknownToolError(
                f"Tool '{name}' is not registered. Available tools: {available}"
            )
        return self._tools[name]

    def describe_all(self) -> list[ToolDescriptor]:
        """Return all registered tools in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        """Return all registered tool names."""
        return list(self._tools.keys())

    def to_openai_tools(self) -> list[dict[str, Any]]:
        """Function-calling schemas for every tool, in registration order."""
        return [d.to_openai_schema() for d in self._tools.values()]

    async def invoke(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> str:
        """Validate arguments and invoke a tool by name.

        Returns the string output (what the model sees).

        Raises:
            UnknownToolError: name is not registered.
            InvalidArgumentsError: required argument missing or not coercible.
            ToolExecutionFailedError: the callable raised or timed out.
        """
        descriptor = self.get(name)
        kwargs = self._validate(name, arguments)

        try:
            result = await asyncio.wait_for(_call(descriptor, kwargs), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ToolExecutionFailedError(
                f"Tool '{name}' timed out after {timeout}s"
            ) from exc
        except Exception as exc:
            logger.warning("Tool '%s' raised %s: %s", name, type(exc).__name__, exc)
            raise ToolExecutionFailedError(
                f"Tool '{name}' failed: {type(exc).__name__}: {exc}"
            ) from exc

        return _render_output(result)

    def _validate(self, name: str, arguments: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentsError(
                f"Arguments for tool '{name}' must be an object, got {type(arguments).__name__}"
            )
        try:
            validated = self._argument_models[name].model_validate(dict(arguments))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidArgumentsError(
                f"Invalid arguments for tool '{name}': {problems}"
            ) from exc
        # Unset or null optional arguments are left out so the callable's defaults apply
        return validated.model_dump(exclude_unset=True, exclude_none=True)


async def _call(descriptor: ToolDescriptor, kwargs: dict[str, Any]) -> Any:
    if inspect.iscoroutinefunction(descriptor.invoke):
        return await descriptor.invoke(**kwargs)
    result = await asyncio.to_thread(descriptor.invoke, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


def _render_output(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, (dict, list, tuple)):
        return json.dumps(result, ensure_ascii=False, default=str)
    return str(result)
