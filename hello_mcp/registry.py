"""Operation table and dispatcher.

Every tool, prompt and resource the server exposes is registered here once,
with a descriptor declaring its input and output shapes. ``Router.dispatch``
validates arguments, runs the handler and maps failures onto error results,
so callers only ever see an ``InvocationResult``.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type, Union

from fastmcp.utilities.logging import get_logger
from mcp.types import ImageContent, TextContent
from pydantic import BaseModel, ValidationError

logger = get_logger(__name__)

TOOL = "tool"
PROMPT = "prompt"
RESOURCE = "resource"
KINDS = (TOOL, PROMPT, RESOURCE)

# Error kinds carried by failed results
UNKNOWN_OPERATION = "unknown_operation"
INVALID_ARGUMENTS = "invalid_arguments"
DOMAIN = "domain"
EXTERNAL = "external"
OUTPUT_MISMATCH = "output_mismatch"

Content = Union[TextContent, ImageContent]


class DuplicateOperationError(ValueError):
    """Raised at startup when an operation name is registered twice."""


@dataclass(frozen=True)
class OperationDescriptor:
    """Metadata registered once per named handler."""
    name: str
    title: str
    description: str
    input_model: Type[BaseModel]
    output_model: Optional[Type[BaseModel]] = None
    kind: str = TOOL
    uri: Optional[str] = None
    mime_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"Unknown operation kind: {self.kind}. Supported: {', '.join(KINDS)}")
        if self.kind == RESOURCE and not self.uri:
            raise ValueError(f"Resource '{self.name}' requires a uri.")

    def output_schema(self) -> Optional[Dict[str, Any]]:
        if self.output_model is None:
            return None
        return self.output_model.model_json_schema()


@dataclass
class InvocationResult:
    """Outcome of one dispatch: content items, optional structured output, error flag."""
    content: List[Content] = field(default_factory=list)
    structured: Optional[Dict[str, Any]] = None
    is_error: bool = False
    error_kind: Optional[str] = None

    @classmethod
    def text(cls, text: str, structured: Optional[Dict[str, Any]] = None) -> "InvocationResult":
        return cls(content=[TextContent(type="text", text=text)], structured=structured)

    @classmethod
    def error(cls, message: str, kind: str) -> "InvocationResult":
        return cls(content=[TextContent(type="text", text=message)], is_error=True, error_kind=kind)

    @property
    def message(self) -> str:
        """Text of the content items, joined by newlines."""
        return "\n".join(item.text for item in self.content if isinstance(item, TextContent))


Handler = Callable[..., Union[InvocationResult, Awaitable[InvocationResult]]]


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    field_name = str(loc[0]) if loc else "arguments"
    return f"field '{field_name}': {first.get('msg', 'invalid value')}"


class Router:
    """Table of named operations; looks them up, validates and executes them."""

    def __init__(self) -> None:
        self._operations: Dict[str, "tuple[OperationDescriptor, Handler]"] = {}

    def register(self, descriptor: OperationDescriptor, handler: Handler) -> OperationDescriptor:
        """Add an operation.

        Raises:
            DuplicateOperationError: If the descriptor's name is already registered.
        """
        if descriptor.name in self._operations:
            raise DuplicateOperationError(f"Operation '{descriptor.name}' is already registered.")
        self._operations[descriptor.name] = (descriptor, handler)
        logger.debug("Registered %s '%s'", descriptor.kind, descriptor.name)
        return descriptor

    def operation(self, descriptor: OperationDescriptor) -> Callable[[Handler], Handler]:
        """Decorator form of ``register``."""
        def decorator(handler: Handler) -> Handler:
            self.register(descriptor, handler)
            return handler
        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def names(self) -> List[str]:
        return list(self._operations)

    def descriptor(self, name: str) -> OperationDescriptor:
        try:
            return self._operations[name][0]
        except KeyError:
            raise KeyError(f"Unknown operation: {name}") from None

    def descriptors(self, kind: Optional[str] = None) -> List[OperationDescriptor]:
        return [d for d, _ in self._operations.values() if kind is None or d.kind == kind]

    async def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> InvocationResult:
        """Validate arguments and run the named operation.

        Never raises for unknown names, invalid arguments or handler failures;
        those come back as error results.
        """
        entry = self._operations.get(name)
        if entry is None:
            logger.warning("Unknown operation requested: %s", name)
            return InvocationResult.error(f"Unknown operation: {name}", UNKNOWN_OPERATION)
        descriptor, handler = entry

        try:
            validated = descriptor.input_model.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            message = f"Invalid arguments for '{name}': {_describe_validation_error(exc)}"
            logger.warning(message)
            return InvocationResult.error(message, INVALID_ARGUMENTS)

        logger.debug("Dispatching '%s'", name)
        try:
            result = handler(**validated.model_dump())
            if inspect.isawaitable(result):
                result = await result
        except ValueError as exc:
            logger.warning("Operation '%s' failed: %s", name, exc)
            return InvocationResult.error(str(exc), DOMAIN)
        except (RuntimeError, OSError) as exc:
            logger.warning("Operation '%s' failed: %s", name, exc)
            return InvocationResult.error(str(exc), EXTERNAL)

        if not result.is_error and descriptor.output_model is not None and result.structured is not None:
            try:
                descriptor.output_model.model_validate(result.structured)
            except ValidationError as exc:
                message = f"Output of '{name}' does not match its declared shape: {_describe_validation_error(exc)}"
                logger.error(message)
                return InvocationResult.error(message, OUTPUT_MISMATCH)

        return result
