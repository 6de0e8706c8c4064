import io
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial

from PIL import Image

from .errors import EncodeError, PixelBufferError, UnsupportedPixelFormatError

# area-averaging, only ever used to shrink
RESAMPLE_FILTER = Image.Resampling.BOX

# JPEG has no alpha channel
JPEG_MODES = {"L": "L", "LA": "L", "RGB": "RGB", "RGBA": "RGB"}


class PixelFormat(Enum):
    R8 = ("R8", 1, 1)
    R8G8 = ("R8G8", 2, 1)
    R8G8B8 = ("R8G8B8", 3, 1)
    R8G8B8A8 = ("R8G8B8A8", 4, 1)
    R16 = ("R16", 1, 2)
    R16G16 = ("R16G16", 2, 2)
    R16G16B16 = ("R16G16B16", 3, 2)
    R16G16B16A16 = ("R16G16B16A16", 4, 2)
    R32 = ("R32", 1, 4)
    R32FLOAT = ("R32FLOAT", 1, 4)
    R32G32B32FLOAT = ("R32G32B32FLOAT", 3, 4)
    R32G32B32A32FLOAT = ("R32G32B32A32FLOAT", 4, 4)

    def __init__(self, label, channels, depth):
        self.label = label
        self.channels = channels
        self.depth = depth


@dataclass(frozen=True)
class ImagePayload:
    pixels: bytes
    format: PixelFormat
    width: int
    height: int

    @property
    def expected_size(self):
        return self.width * self.height * self.format.channels * self.format.depth

    def __str__(self):
        return "{}x{} {}".format(self.width, self.height, self.format.label)


@dataclass(frozen=True)
class TranscodeParams:
    max_dimension: int
    quality: int

    def __post_init__(self):
        if self.max_dimension <= 0:
            raise ValueError("max texture dimension must be positive, got {}".format(self.max_dimension))


def fit_dimensions(width, height, max_dimension):
    """
    Size of a width x height image scaled to fit a max_dimension square.

    The limiting side becomes exactly max_dimension and the other one keeps
    the aspect ratio, rounded to the nearest pixel. Images already inside
    the box keep their size.
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height

    if width > height:
        return max_dimension, max(1, (height * max_dimension + width // 2) // width)

    return max(1, (width * max_dimension + height // 2) // height), max_dimension


class RawImage:
    def __init__(self, img: Image.Image):
        self.img = img
        self.width, self.height = img.size

    @classmethod
    def from_payload(cls, payload: ImagePayload):
        match payload.format:
            case PixelFormat.R8:
                mode = "L"
            case PixelFormat.R8G8:
                mode = "LA"
            case PixelFormat.R8G8B8:
                mode = "RGB"
            case PixelFormat.R8G8B8A8:
                mode = "RGBA"
            case unsupported:
                raise UnsupportedPixelFormatError("input image format not implemented: {}".format(unsupported.label))

        if payload.width <= 0 or payload.height <= 0:
            raise PixelBufferError("invalid image dimensions {}x{}".format(payload.width, payload.height))

        if len(payload.pixels) != payload.expected_size:
            raise PixelBufferError(
                "{} image needs {} bytes of pixel data, got {}".format(
                    payload, payload.expected_size, len(payload.pixels)
                )
            )

        return cls(Image.frombytes(mode, (payload.width, payload.height), payload.pixels))

    def resize(self, max_dimension):
        size = fit_dimensions(self.width, self.height, max_dimension)
        if size == (self.width, self.height):
            return self

        return RawImage(self.img.resize(size, RESAMPLE_FILTER))

    def pack(self, quality):
        if not 0 <= quality <= 100:
            raise EncodeError("texture quality must be between 0 and 100, got {}".format(quality))

        img = self.img
        if img.mode != JPEG_MODES[img.mode]:
            img = img.convert(JPEG_MODES[img.mode])

        buf = io.BytesIO()
        try:
            img.save(buf, format="JPEG", quality=quality)
        except (OSError, ValueError) as e:
            raise EncodeError("could not encode {}x{} image: {}".format(self.width, self.height, e)) from e

        return buf.getvalue()


def transcode(payload: ImagePayload, params: TranscodeParams) -> bytes:
    """Decode, shrink and JPEG-encode a single texture."""
    return RawImage.from_payload(payload).resize(params.max_dimension).pack(params.quality)


def transcode_all(payloads, params: TranscodeParams, jobs=1):
    """
    Transcode every payload, in input order.

    Textures are independent of each other, so with jobs > 1 they are spread
    over a thread pool. The first failure is raised.
    """
    if jobs <= 1 or len(payloads) <= 1:
        return [transcode(p, params) for p in payloads]

    with ThreadPoolExecutor(max_workers=jobs) as executor:
        return list(executor.map(partial(transcode, params=params), payloads))
