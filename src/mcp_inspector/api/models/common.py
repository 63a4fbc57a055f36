"""Models shared across routers."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness plus the number of browser sessions held."""

    status: str
    sessions: int
    version: str
