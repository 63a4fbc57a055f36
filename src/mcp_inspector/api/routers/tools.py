"""Tool router."""

from typing import Any

from fastapi import APIRouter, Depends, Path

from mcp_inspector.api.deps import get_manager, get_session_id
from mcp_inspector.api.models import (
    InvokeRequest,
    InvokeResponse,
    ToolExampleResponse,
    ToolModel,
    ValidateRequest,
    ValidateResponse,
)
from mcp_inspector.schema import generate_example, validate_arguments
from mcp_inspector.session import SessionManager

tool_router = APIRouter(prefix="/tools", tags=["Tools"])


@tool_router.get("", response_model=list[ToolModel])
async def list_tools(
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> list[ToolModel]:
    """Tool catalog of the connected server."""
    manager.get_or_create(session_id)
    return [ToolModel.from_tool(t) for t in manager.list_tools(session_id)]


@tool_router.get("/{tool_name}", response_model=ToolModel)
async def get_tool(
    tool_name: str = Path(...),
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> ToolModel:
    manager.get_or_create(session_id)
    return ToolModel.from_tool(manager.get_tool(session_id, tool_name))


@tool_router.get("/{tool_name}/example", response_model=ToolExampleResponse)
async def tool_example(
    tool_name: str = Path(...),
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> ToolExampleResponse:
    """Example arguments built from the tool's input schema."""
    manager.get_or_create(session_id)
    tool = manager.get_tool(session_id, tool_name)
    return ToolExampleResponse(arguments=generate_example(tool.input_schema))


@tool_router.post("/{tool_name}/validate", response_model=ValidateResponse)
async def validate_tool_arguments(
    body: ValidateRequest,
    tool_name: str = Path(...),
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> ValidateResponse:
    """Check arguments against the tool's input schema without calling it."""
    manager.get_or_create(session_id)
    tool = manager.get_tool(session_id, tool_name)
    issues = validate_arguments(body.arguments, tool.input_schema)
    return ValidateResponse(valid=not issues, issues=issues)


@tool_router.post("/{tool_name}/invoke", response_model=InvokeResponse)
async def invoke_tool(
    body: InvokeRequest,
    tool_name: str = Path(...),
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> InvokeResponse:
    """Call a tool on the upstream server.

    Answers 200 for every invocation outcome; only a missing connection
    is an HTTP error.
    """
    manager.get_or_create(session_id)
    arguments: dict[str, Any] = body.arguments
    result = await manager.invoke(session_id, tool_name, arguments, body.timeout_seconds)
    return InvokeResponse.from_result(result)
