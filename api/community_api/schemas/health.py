from community_api.schemas import AppBaseModel


class HealthResponse(AppBaseModel):
    """GET /health response."""

    status: str
    db: str
    sse_connections: int
