from .fakes import FakeRecognitionPort, RaisingRecognitionPort

__all__ = ["FakeRecognitionPort", "RaisingRecognitionPort"]
