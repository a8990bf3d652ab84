import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from skimage.io import imread, imsave
from skimage.transform import resize

# CLI name -> (canonical format, file extension written)
FORMATS = {
    "png": ("Png", "png"),
    "jpg": ("Jpeg", "jpg"),
    "jpeg": ("Jpeg", "jpg"),
    "gif": ("Gif", "gif"),
    "webp": ("WebP", "webp"),
    "pnm": ("Pnm", "ppm"),
    "tiff": ("Tiff", "tiff"),
    "tga": ("Tga", "tga"),
    "bmp": ("Bmp", "bmp"),
    "ico": ("Ico", "ico"),
    "pcx": ("Pcx", "pcx"),
}

# Leading bytes -> CLI format name. TGA has no signature and is matched by extension.
SIGNATURES = [
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
    (b"BM", "bmp"),
    (b"\x00\x00\x01\x00", "ico"),
]

CHANNEL_NAMES = {1: "L", 2: "La", 3: "Rgb", 4: "Rgba"}


class ImageError(Exception):
    pass


@dataclass(frozen=True)
class ImageSize:
    """Requested size; a missing side is scaled to keep the aspect ratio."""

    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.width is None and self.height is None

    def to_wh(self, width: int, height: int) -> Optional[Tuple[int, int]]:
        aspect_ratio = width / height
        if self.width is not None and self.height is not None:
            return self.width, self.height
        if self.width is not None:
            return self.width, int(self.width / aspect_ratio)
        if self.height is not None:
            return int(self.height * aspect_ratio), self.height
        return None


@dataclass
class ImageWithMeta:
    format: str
    width: int
    height: int
    color_type: str
    bytes_per_pixel: int
    pixels: np.ndarray

    def __repr__(self):
        # the pixel array is far too verbose to print
        return (
            f"ImageWithMeta(format={self.format!r}, width={self.width}, height={self.height}, "
            f"color_type={self.color_type!r}, bytes_per_pixel={self.bytes_per_pixel})"
        )

    def describe(self) -> str:
        return (
            f"===== =====\nFormat: {self.format}\nWidth: {self.width}\nHeight: {self.height}\n"
            f"Color Type: {self.color_type}\nBit Depth: {self.bytes_per_pixel}"
        )


def parse_format(value: str) -> str:
    name = str(value).strip().lower()
    if name not in FORMATS:
        raise ValueError(f"invalid format '{value}' (choose from {', '.join(FORMATS)})")
    return name


def parse_size(value: str) -> ImageSize:
    """
    Parse '<width>x<height>'. Either side may be omitted ('256x', 'x128').
    Anything unparseable yields an empty size (no resizing).
    """
    parts = str(value).split("x")
    if len(parts) != 2:
        return ImageSize()
    w, h = (int(p) if re.fullmatch(r"\d+", p) else None for p in parts)
    return ImageSize(width=w, height=h)


def guess_format(buffer: bytes, path: Path) -> Optional[str]:
    for signature, name in SIGNATURES:
        if buffer.startswith(signature):
            return name
    if buffer[:4] == b"RIFF" and buffer[8:12] == b"WEBP":
        return "webp"
    if re.match(rb"P[1-7]\s", buffer[:3]):
        return "pnm"
    if buffer[:1] == b"\x0a" and buffer[1:2] in (b"\x00", b"\x02", b"\x03", b"\x04", b"\x05"):
        return "pcx"
    suffix = path.suffix.lower().lstrip(".")
    if suffix in ("tga", "tpic"):
        return "tga"
    return None


def color_type(pixels: np.ndarray) -> Tuple[str, int]:
    """('Rgba8', 4)-style color description and bytes per pixel."""
    channels = 1 if pixels.ndim == 2 else pixels.shape[2]
    bits = pixels.dtype.itemsize * 8
    suffix = f"{bits}F" if np.issubdtype(pixels.dtype, np.floating) else f"{bits}"
    name = CHANNEL_NAMES.get(channels, f"{channels}ch") + suffix
    return name, channels * pixels.dtype.itemsize


def load_image(source: Path) -> ImageWithMeta:
    """Read and decode an image file, keeping only the first frame of animations."""
    source = Path(source)
    with source.open("rb") as f:
        header = f.read(16)

    fmt = guess_format(header, source)
    if fmt is None:
        raise ImageError("unknown format")

    try:
        pixels = imread(source)
    except (OSError, ValueError) as e:
        raise ImageError(str(e)) from e

    # Animated GIF/WebP decode to (frames, H, W, C)
    if pixels.ndim == 4:
        pixels = pixels[0]

    name, bpp = color_type(pixels)
    return ImageWithMeta(
        format=FORMATS[fmt][0],
        width=pixels.shape[1],
        height=pixels.shape[0],
        color_type=name,
        bytes_per_pixel=bpp,
        pixels=pixels,
    )


def resize_exact(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Nearest-neighbour resize to exactly width x height, keeping the dtype."""
    if width <= 0 or height <= 0:
        raise ImageError(f"invalid target size {width}x{height}")
    out = resize(
        pixels,
        (height, width) + pixels.shape[2:],
        order=0,
        preserve_range=True,
        anti_aliasing=False,
    )
    return out.astype(pixels.dtype)


def target_path(source: Path, extension: str, wh: Optional[Tuple[int, int]] = None) -> Path:
    """'<stem>.<ext>' or '<stem>@<w>x<h>.<ext>' next to the source file."""
    stem = source.stem
    if wh is not None:
        stem = f"{stem}@{wh[0]}x{wh[1]}"
    return source.with_name(f"{stem}.{extension}")


def convert(source: Path, image: ImageWithMeta, fmt: Optional[str] = None, size: Optional[ImageSize] = None) -> Optional[Path]:
    """
    Resize and/or re-encode an already loaded image.
    Nothing is written unless a format or a non-empty size is given.
    Returns the written path.
    """
    if fmt is None and (size is None or size.is_empty):
        return None

    if fmt is not None:
        extension = FORMATS[parse_format(fmt)][1]
    else:
        extension = next(ext for canonical, ext in FORMATS.values() if canonical == image.format)

    wh = size.to_wh(image.width, image.height) if size is not None else None
    pixels = image.pixels if wh is None else resize_exact(image.pixels, *wh)

    output = target_path(Path(source), extension, wh)
    try:
        imsave(output, pixels, check_contrast=False)
    except (OSError, ValueError, TypeError) as e:
        raise ImageError(str(e)) from e
    return output
