from typing import List

from pydantic import BaseModel, Field

# Stock avatars offered by the video API ("List of stock avatars" in its reference docs).
STOCK_ACTORS = {
    "anna": "anna_costume1_cameraA",
    "bridget": "bridget_costume1_cameraA",
    "dave": "dave_costume1_cameraA",
    "howard": "howard_costume1_cameraA",
    "isabella": "isabella_costume1_cameraA",
    "santa": "santa_costume1_cameraA",
}

DEFAULT_ACTOR = STOCK_ACTORS["santa"]
DEFAULT_BACKGROUND = "green_screen"


class VideoInput(BaseModel):
    script: str = Field(min_length=1)
    actor: str = DEFAULT_ACTOR
    background: str = DEFAULT_BACKGROUND


class VideoCreateRequest(BaseModel):
    """POST body accepted by the video API creation endpoint."""

    test: bool = True
    input: List[VideoInput]
