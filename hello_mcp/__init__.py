"""Hello MCP Server - greeting, arithmetic, clock and image generation tools.

This package provides an MCP server built on FastMCP with a small set of
stateless tools, one prompt and one static resource.
"""

from .core import (
    GREETINGS,
    ImageResult,
    ServerConfig,
    calculate,
    code_review_prompt,
    current_time,
    generate_image,
    greet,
    load_config,
    server_info,
)
from .registry import (
    DuplicateOperationError,
    InvocationResult,
    OperationDescriptor,
    Router,
)
from .server import build_router, create_server

__all__ = [name for name in locals() if not name.startswith("_")]

__version__ = "1.0.0"
