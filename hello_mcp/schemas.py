"""Declared input and output shapes for the server operations."""
from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Number = Union[int, float]


class StrictModel(BaseModel):
    """Base shape: no coercion, no unexpected fields."""
    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)


class NoArguments(StrictModel):
    pass


class GreetingInput(StrictModel):
    name: str = Field(description="Name of the person to greet")
    language: str = Field(
        description=(
            "Greeting language (korean, english, japanese, chinese, spanish, "
            "french, german, italian, portuguese, russian)"
        )
    )


class GreetingOutput(StrictModel):
    greeting: str


class CalcInput(StrictModel):
    num1: Number = Field(description="First number")
    num2: Number = Field(description="Second number")
    operator: Literal["+", "-", "*", "/"] = Field(description="Operator (+, -, *, /)")


class CalcOutput(StrictModel):
    result: Number


class CurrentTimeInput(StrictModel):
    timezone: str = Field(
        description="Timezone (e.g. Asia/Seoul, America/New_York, Europe/London, Asia/Tokyo, UTC)"
    )


class CurrentTimeOutput(StrictModel):
    timezone: str
    datetime: str
    date: str
    time: str


class GenerateImageInput(StrictModel):
    prompt: str = Field(description="Description of the image to generate (English recommended)")


class CodeReviewInput(StrictModel):
    code: str = Field(description="Code to review")
    language: Optional[str] = Field(
        default=None,
        description="Programming language (e.g. typescript, python, java)",
    )
