from .opencv import OpenCVFrameSource

__all__ = ["OpenCVFrameSource"]
