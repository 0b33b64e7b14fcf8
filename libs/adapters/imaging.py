from __future__ import annotations

from typing import Final

from PIL import Image

# clockwise rotation needed to view the frame upright -> PIL transpose (counter-clockwise)
_UPRIGHT: Final = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def bgra_to_image(data: bytes, width: int, height: int) -> Image.Image:
    return Image.frombytes("RGB", (width, height), data, "raw", "BGRX")


def upright(img: Image.Image, rotation_degrees: int) -> Image.Image:
    op = _UPRIGHT.get(rotation_degrees)
    return img.transpose(op) if op is not None else img
