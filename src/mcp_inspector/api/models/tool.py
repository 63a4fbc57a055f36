"""Tool REST API models."""

from typing import Any

from pydantic import BaseModel, Field

from mcp_inspector.mcp.types import InvocationResult, Tool


class ToolModel(BaseModel):
    """A tool from the upstream catalog."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any]

    @classmethod
    def from_tool(cls, tool: Tool) -> "ToolModel":
        return cls(name=tool.name, description=tool.description, input_schema=tool.input_schema)


class ToolExampleResponse(BaseModel):
    """Example arguments generated from the input schema."""

    arguments: dict[str, Any]


class ValidateRequest(BaseModel):
    arguments: Any = Field(default_factory=dict)


class ValidateResponse(BaseModel):
    valid: bool
    issues: list[str]


class InvokeRequest(BaseModel):
    """Tool invocation request."""

    arguments: dict[str, Any] = Field(default_factory=dict)
    timeout_seconds: float | None = Field(default=None, gt=0)


class InvokeResponse(BaseModel):
    """Tool invocation outcome.

    Upstream and transport failures are distinguished by error_code.
    """

    success: bool
    result: Any = None
    error: str | None = None
    error_code: str | None = None
    duration_ms: int

    @classmethod
    def from_result(cls, result: InvocationResult) -> "InvokeResponse":
        return cls(
            success=result.success,
            result=result.result,
            error=result.error,
            error_code=result.error_code,
            duration_ms=result.duration_ms,
        )
