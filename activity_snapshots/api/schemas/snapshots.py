from pydantic import BaseModel


class PipelineRunResponse(BaseModel):
    """Result of a pipeline run triggered over HTTP."""

    source: str
    status: str
    files: list[str]
