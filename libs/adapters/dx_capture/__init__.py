from .fakes import FakeFrameSource
from .mss import MSSFrameSource

__all__ = ["FakeFrameSource", "MSSFrameSource"]
