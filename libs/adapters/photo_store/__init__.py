from .files import FakePhotoCapture, FilePhotoCapture

__all__ = ["FilePhotoCapture", "FakePhotoCapture"]
