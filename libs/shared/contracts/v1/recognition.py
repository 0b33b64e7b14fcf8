from __future__ import annotations

from collections.abc import Iterator
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Rect(BaseModel):
    """Axis-aligned box; frame-space or viewport-space depending on context."""

    model_config = ConfigDict(frozen=True)

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def as_tuple(self) -> tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom


class TextFragment(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    bounding_box: Rect | None = None  # None when the service could not localize it


class RecognitionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    api: Literal["v1"] = "v1"
    full_text: str = ""
    fragments: tuple[TextFragment, ...] = ()

    def boxed(self) -> Iterator[TextFragment]:
        return (f for f in self.fragments if f.bounding_box is not None)

    def is_empty(self) -> bool:
        return not self.full_text and not self.fragments


EMPTY_RESULT = RecognitionResult()


class DisplayMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    viewport_width: float = Field(gt=0)
    viewport_height: float = Field(gt=0)
