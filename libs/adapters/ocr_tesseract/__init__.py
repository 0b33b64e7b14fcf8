from .tesseract import TesseractRecognizer, result_from_data

__all__ = ["TesseractRecognizer", "result_from_data"]
