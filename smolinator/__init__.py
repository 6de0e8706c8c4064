from .embed import data_uri, reassemble, write_gltf
from .errors import (
    ContainerParseError,
    EncodeError,
    OutputWriteError,
    PixelBufferError,
    SmolinatorError,
    UnsupportedPixelFormatError,
)
from .gltf import Asset, load_asset
from .pipeline import OUTPUT_FILENAME, smolinate
from .raw import ImagePayload, PixelFormat, RawImage, TranscodeParams, transcode, transcode_all

__version__ = "0.1.0"
