"""MCP server exposing greeting, arithmetic, clock and image generation operations.

``build_router`` registers every operation with its declared shapes;
``create_server`` mounts the router's operations on a FastMCP instance so MCP
clients reach them over stdio.
"""
import asyncio
import base64
import json
import sys
from typing import Annotated, Any, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import PromptError, ResourceError, ToolError
from fastmcp.tools.tool import ToolResult
from fastmcp.utilities.logging import get_logger
from mcp.types import Annotations, ImageContent
from pydantic import BaseModel, Field

from . import core
from .core import ServerConfig
from .registry import PROMPT, RESOURCE, InvocationResult, OperationDescriptor, Router
from .schemas import (
    CalcInput,
    CalcOutput,
    CodeReviewInput,
    CurrentTimeInput,
    CurrentTimeOutput,
    GenerateImageInput,
    GreetingInput,
    GreetingOutput,
    NoArguments,
)

logger = get_logger(__name__)

SERVER_INFO_URI = "server://info"

GREETING = OperationDescriptor(
    name="greeting",
    title="Greeting Tool",
    description="Returns a greeting for the given name in the requested language",
    input_model=GreetingInput,
    output_model=GreetingOutput,
)
CALC = OperationDescriptor(
    name="calc",
    title="Calculator Tool",
    description="Applies an arithmetic operator to two numbers and returns the result",
    input_model=CalcInput,
    output_model=CalcOutput,
)
CURRENT_TIME = OperationDescriptor(
    name="current-time",
    title="Current Time Tool",
    description="Returns the current time in the given timezone",
    input_model=CurrentTimeInput,
    output_model=CurrentTimeOutput,
)
GENERATE_IMAGE = OperationDescriptor(
    name="generate-image",
    title="Image Generation Tool",
    description=f"Generates an image from a text prompt ({core.IMAGE_MODEL_ID.split('/')[-1]} model)",
    input_model=GenerateImageInput,
)
CODE_REVIEW = OperationDescriptor(
    name="code_review",
    title="Code Review Prompt",
    description="Builds a code review request for the given code",
    input_model=CodeReviewInput,
    kind=PROMPT,
)
SERVER_INFO = OperationDescriptor(
    name="server-info",
    title="Server Information",
    description="Returns the current status and information of the server",
    input_model=NoArguments,
    kind=RESOURCE,
    uri=SERVER_INFO_URI,
    mime_type="application/json",
)


def _image_content(result: core.ImageResult) -> ImageContent:
    return ImageContent(
        type="image",
        data=base64.b64encode(result.buffer).decode("utf-8"),
        mimeType=result.mime_type,
        annotations=Annotations(audience=["user"], priority=0.9),
    )


def build_router(config: ServerConfig) -> Router:
    """Register every operation against a fresh router."""
    router = Router()

    @router.operation(GREETING)
    def greeting(name: str, language: str) -> InvocationResult:
        message = core.greet(name, language)
        return InvocationResult.text(message, structured={"greeting": message})

    @router.operation(CALC)
    def calc(num1: core.Number, num2: core.Number, operator: str) -> InvocationResult:
        result, message = core.calculate(num1, num2, operator)
        return InvocationResult.text(message, structured={"result": result})

    @router.operation(CURRENT_TIME)
    def current_time(timezone: str) -> InvocationResult:
        output = core.current_time(timezone)
        return InvocationResult.text(f"Current time in {timezone}: {output['datetime']}", structured=output)

    @router.operation(GENERATE_IMAGE)
    async def generate_image(prompt: str) -> InvocationResult:
        try:
            result = await asyncio.to_thread(core.generate_image, prompt=prompt, api_key=config.hf_token)
        except (ValueError, RuntimeError, OSError) as exc:
            raise RuntimeError(f"Image generation error: {exc}") from exc
        return InvocationResult(content=[_image_content(result)])

    @router.operation(CODE_REVIEW)
    def code_review(code: str, language: Optional[str] = None) -> InvocationResult:
        return InvocationResult.text(core.code_review_prompt(code, language))

    @router.operation(SERVER_INFO)
    def server_info() -> InvocationResult:
        info = core.server_info()
        return InvocationResult.text(json.dumps(info, indent=2, ensure_ascii=False), structured=info)

    return router


def _param(model: type[BaseModel], field_name: str) -> Any:
    """Build a FastMCP parameter type from a declared input field."""
    declared = model.model_fields[field_name]
    return Annotated[declared.annotation, Field(description=declared.description)]


def _to_tool_result(result: InvocationResult) -> ToolResult:
    if result.is_error:
        raise ToolError(result.message)
    return ToolResult(content=result.content, structured_content=result.structured)


def create_server(config: ServerConfig, router: Optional[Router] = None) -> FastMCP:
    """Create the FastMCP server with every router operation mounted."""
    router = router or build_router(config)
    mcp = FastMCP(core.SERVER_NAME, version=core.SERVER_VERSION)

    @mcp.tool(
        name=GREETING.name,
        title=GREETING.title,
        description=GREETING.description,
        output_schema=GREETING.output_schema(),
    )
    async def greeting(
        name: _param(GreetingInput, "name"),
        language: _param(GreetingInput, "language"),
    ) -> ToolResult:
        return _to_tool_result(await router.dispatch(GREETING.name, {"name": name, "language": language}))

    @mcp.tool(
        name=CALC.name,
        title=CALC.title,
        description=CALC.description,
        output_schema=CALC.output_schema(),
    )
    async def calc(
        num1: _param(CalcInput, "num1"),
        num2: _param(CalcInput, "num2"),
        operator: _param(CalcInput, "operator"),
    ) -> ToolResult:
        arguments = {"num1": num1, "num2": num2, "operator": operator}
        return _to_tool_result(await router.dispatch(CALC.name, arguments))

    @mcp.tool(
        name=CURRENT_TIME.name,
        title=CURRENT_TIME.title,
        description=CURRENT_TIME.description,
        output_schema=CURRENT_TIME.output_schema(),
    )
    async def current_time(
        timezone: _param(CurrentTimeInput, "timezone"),
    ) -> ToolResult:
        return _to_tool_result(await router.dispatch(CURRENT_TIME.name, {"timezone": timezone}))

    @mcp.tool(
        name=GENERATE_IMAGE.name,
        title=GENERATE_IMAGE.title,
        description=GENERATE_IMAGE.description,
        output_schema=None,
    )
    async def generate_image(
        prompt: _param(GenerateImageInput, "prompt"),
    ) -> ToolResult:
        return _to_tool_result(await router.dispatch(GENERATE_IMAGE.name, {"prompt": prompt}))

    @mcp.prompt(name=CODE_REVIEW.name, title=CODE_REVIEW.title, description=CODE_REVIEW.description)
    async def code_review(
        code: _param(CodeReviewInput, "code"),
        language: _param(CodeReviewInput, "language") = None,
    ) -> str:
        result = await router.dispatch(CODE_REVIEW.name, {"code": code, "language": language})
        if result.is_error:
            raise PromptError(result.message)
        return result.message

    @mcp.resource(
        SERVER_INFO.uri,
        name=SERVER_INFO.name,
        title=SERVER_INFO.title,
        description=SERVER_INFO.description,
        mime_type=SERVER_INFO.mime_type,
    )
    async def server_info() -> str:
        result = await router.dispatch(SERVER_INFO.name, {})
        if result.is_error:
            raise ResourceError(result.message)
        return result.message

    return mcp


def main() -> None:
    """Load configuration and serve over stdio."""
    try:
        config = core.load_config()
    except ValueError as exc:
        logger.error(str(exc))
        sys.exit(1)

    mcp = create_server(config)
    logger.info("Starting %s %s", core.SERVER_NAME, core.SERVER_VERSION)
    mcp.run()


# Entry point for running the server
if __name__ == "__main__":
    main()
