from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Final

import pytesseract

from adapters.imaging import bgra_to_image, upright
from ports.recognition import RecognitionPort
from ports.vision import Frame
from shared.contracts.v1.recognition import RecognitionResult, Rect, TextFragment

LOG: Final = logging.getLogger("adapters.tesseract")


def result_from_data(data: Mapping[str, Sequence[Any]], min_confidence: float = 0.0) -> RecognitionResult:
    """Build a word-level result from pytesseract's Output.DICT.

    Rows with conf < 0 are layout rows (page/block/line), not words.
    Words keep Tesseract's reading order; full_text joins them per line.
    """
    fragments: list[TextFragment] = []
    lines: dict[tuple[int, int, int], list[str]] = {}
    texts = data.get("text", [])
    for i, raw in enumerate(texts):
        text = str(raw or "").strip()
        if not text:
            continue
        try:
            conf = float(data["conf"][i])
        except (KeyError, IndexError, TypeError, ValueError):
            conf = -1.0
        if conf < 0 or conf < min_confidence:
            continue
        left, top = float(data["left"][i]), float(data["top"][i])
        box = Rect(
            left=left,
            top=top,
            right=left + float(data["width"][i]),
            bottom=top + float(data["height"][i]),
        )
        fragments.append(TextFragment(text=text, bounding_box=box))
        key = (
            int(data.get("block_num", [0] * len(texts))[i]),
            int(data.get("par_num", [0] * len(texts))[i]),
            int(data.get("line_num", [0] * len(texts))[i]),
        )
        lines.setdefault(key, []).append(text)
    full_text = "\n".join(" ".join(words) for words in lines.values())
    return RecognitionResult(full_text=full_text, fragments=tuple(fragments))


class TesseractRecognizer(RecognitionPort):
    """Runs Tesseract on its own thread so callers never wait on OCR."""

    def __init__(
        self,
        lang: str = "eng",
        config: str = "",
        min_confidence: float = 40.0,
        tesseract_cmd: str | None = None,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._lang = lang
        self._config = config
        self._min_conf = float(min_confidence)
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tesseract")

    def recognize(self, image: Frame, rotation_degrees: int) -> Future[RecognitionResult]:
        if image.image is None:
            raise ValueError(f"frame {image.frame_id} has no image")
        return self._pool.submit(
            self._run, image.image, image.width, image.height, rotation_degrees
        )

    def _run(self, data: bytes, width: int, height: int, rotation_degrees: int) -> RecognitionResult:
        img = upright(bgra_to_image(data, width, height), rotation_degrees)
        out = pytesseract.image_to_data(
            img,
            lang=self._lang,
            config=self._config,
            output_type=pytesseract.Output.DICT,
        )
        result = result_from_data(out, self._min_conf)
        LOG.debug("tesseract: %d fragments", len(result.fragments))
        return result

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
