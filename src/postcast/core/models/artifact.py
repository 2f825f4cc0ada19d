from datetime import date
from pathlib import Path

from pydantic import BaseModel


class Artifact(BaseModel):
    """Rendered video written to local storage, keyed by job id and retrieval date."""

    job_id: str
    path: Path
    retrieved_on: date
    size_bytes: int
    source_url: str
