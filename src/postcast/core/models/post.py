from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, field_validator


class TimeHorizon(StrEnum):
    day = "day"
    week = "week"
    month = "month"
    year = "year"
    all = "all"


def compose_script(title: Optional[str], body: Optional[str]) -> str:
    """Join a post title and body into one narration script.

    A period is appended to a title that does not already end with one and the
    two parts are separated by a single space. Empty parts are skipped.
    """
    title = (title or "").strip()
    body = (body or "").strip()
    if title and not title.endswith("."):
        title += "."
    return " ".join(part for part in (title, body) if part)


class Post(BaseModel):
    category: str
    title: str = ""
    selftext: str = ""
    position: int = 0  # zero-based ordinal in the ranked listing
    permalink: Optional[str] = None

    @field_validator("title", "selftext", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value

    @property
    def script(self) -> str:
        return compose_script(self.title, self.selftext)
