# Load a glTF 2.0 asset (.gltf or .glb) into memory:
# the JSON document, every buffer's bytes and every image decoded to raw pixels.
import base64
import binascii
import io
import json
import os
import struct
from dataclasses import dataclass
from urllib.parse import unquote

import parse
from PIL import Image

from .errors import ContainerParseError
from .raw import ImagePayload, PixelFormat

GLB_MAGIC = b"glTF"
GLB_HEADER_SIZE = 12
GLB_CHUNK_HEADER_SIZE = 8
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

# Pillow modes we can hand over as-is
PIXEL_FORMATS = {
    "L": PixelFormat.R8,
    "LA": PixelFormat.R8G8,
    "RGB": PixelFormat.R8G8B8,
    "RGBA": PixelFormat.R8G8B8A8,
    "I;16": PixelFormat.R16,
    "I;16B": PixelFormat.R16,
    "I;16L": PixelFormat.R16,
    "I;16N": PixelFormat.R16,
    "I": PixelFormat.R32,
    "F": PixelFormat.R32FLOAT,
}

# Pillow modes expanded to one of the above before tagging
EXPANDED_MODES = {
    "1": "L",
    "PA": "RGBA",
    "CMYK": "RGB",
    "YCbCr": "RGB",
    "LAB": "RGB",
    "HSV": "RGB",
}

# Pillow keeps only the high byte of 16-bit colour PNGs
WIDE_FORMATS = {
    "LA": PixelFormat.R16G16,
    "RGB": PixelFormat.R16G16B16,
    "RGBA": PixelFormat.R16G16B16A16,
}


@parse.with_pattern(r"[^;,]*")
def _mime_type(text):
    return text


@parse.with_pattern(r"[A-Za-z0-9+/=\s]*")
def _base64(text):
    return text


DATA_URI = parse.compile("data:{mime:MimeType};base64,{payload:Base64}", dict(MimeType=_mime_type, Base64=_base64))


@dataclass(frozen=True)
class Asset:
    document: dict
    buffers: tuple
    images: tuple

    def __str__(self):
        return "{} buffer(s), {} image(s), {} mesh(es)".format(
            len(self.buffers), len(self.images), len(self.document.get("meshes", []))
        )


def decode_data_uri(uri):
    result = DATA_URI.parse(uri)
    if result is None:
        raise ContainerParseError("unsupported data URI: {}...".format(uri[:40]))

    try:
        return base64.b64decode(result["payload"])
    except binascii.Error as e:
        raise ContainerParseError("invalid base64 payload in data URI: {}".format(e)) from e


def parse_glb(data):
    """Split a GLB container into its JSON document and binary chunk (or None)."""
    if len(data) < GLB_HEADER_SIZE:
        raise ContainerParseError("truncated GLB header")

    magic, version, length = struct.unpack_from("<4sII", data, 0)
    if magic != GLB_MAGIC:
        raise ContainerParseError("not a GLB container")
    if version != 2:
        raise ContainerParseError("unsupported GLB version {}".format(version))
    if length > len(data):
        raise ContainerParseError("GLB declares {} bytes but file has {}".format(length, len(data)))

    chunks = []
    offset = GLB_HEADER_SIZE
    while offset + GLB_CHUNK_HEADER_SIZE <= length:
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        start = offset + GLB_CHUNK_HEADER_SIZE
        end = start + chunk_length
        if end > length:
            raise ContainerParseError("GLB chunk #{} runs past the end of the file".format(len(chunks)))
        chunks.append((chunk_type, data[start:end]))
        offset = end

    if not chunks or chunks[0][0] != CHUNK_JSON:
        raise ContainerParseError("GLB does not start with a JSON chunk")

    blob = None
    if len(chunks) > 1 and chunks[1][0] == CHUNK_BIN:
        blob = chunks[1][1]

    return chunks[0][1], blob


def tile_rawmode(img: Image.Image):
    """Pixel layout the decoder reads, available only until the image is loaded."""
    for tile in img.tile:
        args = tile[3]
        if isinstance(args, tuple):
            args = args[0] if args else None
        if isinstance(args, str):
            return args
    return None


def widen(data):
    # 8-bit samples back to 16 bits, v -> v * 257
    out = bytearray(len(data) * 2)
    out[0::2] = data
    out[1::2] = data
    return bytes(out)


def payload_from_image(img: Image.Image, rawmode=None) -> ImagePayload:
    if img.mode in WIDE_FORMATS and rawmode in [img.mode + suffix for suffix in (";16B", ";16L", ";16N")]:
        return ImagePayload(widen(img.tobytes()), WIDE_FORMATS[img.mode], img.width, img.height)

    mode = img.mode
    if mode == "P":
        mode = "RGBA" if "transparency" in img.info else "RGB"
    mode = EXPANDED_MODES.get(mode, mode)

    pixel_format = PIXEL_FORMATS.get(mode)
    if pixel_format is None:
        raise ContainerParseError("cannot read {} image".format(img.mode))

    if mode != img.mode:
        img = img.convert(mode)

    return ImagePayload(img.tobytes(), pixel_format, img.width, img.height)


class GLTFImport:
    def __init__(self, file_rel_path):
        file_abs_path = os.path.abspath(file_rel_path)
        self.cwd = os.path.dirname(file_abs_path)

        try:
            with open(file_abs_path, "rb") as file:
                raw = file.read()
        except OSError as e:
            raise ContainerParseError("cannot read {}: {}".format(file_rel_path, e)) from e

        self.blob = None
        if raw[:4] == GLB_MAGIC:
            raw, self.blob = parse_glb(raw)

        try:
            self.gltf = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ContainerParseError("invalid glTF JSON: {}".format(e)) from e

        if not isinstance(self.gltf, dict):
            raise ContainerParseError("glTF root must be a JSON object")

        version = str(self.gltf.get("asset", {}).get("version", ""))
        if version.split(".")[0] != "2":
            raise ContainerParseError("unsupported glTF version '{}'".format(version))

        self.buffer_views = self.gltf.get("bufferViews", [])
        self.buffers = []
        self.images = []
        self.construct_buffers()
        self.construct_images()

    def lookup(self, table, index, what):
        if not isinstance(index, int) or not 0 <= index < len(table):
            raise ContainerParseError("{} index {} out of range".format(what, index))
        return table[index]

    def read_file(self, uri):
        path = os.path.join(self.cwd, unquote(uri))
        try:
            with open(path, "rb") as bin_file:
                return bin_file.read()
        except OSError as e:
            raise ContainerParseError("cannot read external file {}: {}".format(uri, e)) from e

    def read_uri(self, uri):
        if uri.startswith("data:"):
            return decode_data_uri(uri)
        return self.read_file(uri)

    def construct_buffers(self):
        for i, buf in enumerate(self.gltf.get("buffers", [])):
            uri = buf.get("uri")
            if uri is not None:
                data = self.read_uri(uri)
            elif i == 0 and self.blob is not None:
                data = self.blob
            else:
                raise ContainerParseError("buffer #{} has no uri and no binary chunk".format(i))

            byte_length = buf.get("byteLength")
            if not isinstance(byte_length, int) or byte_length < 0:
                raise ContainerParseError("buffer #{} has invalid byteLength {}".format(i, byte_length))
            if len(data) < byte_length:
                raise ContainerParseError(
                    "buffer #{} declares {} bytes but only {} are available".format(i, byte_length, len(data))
                )

            # GLB binary chunks are padded to 4 bytes
            self.buffers.append(bytes(data[:byte_length]))

    def image_bytes(self, i, image):
        if "bufferView" in image:
            view = self.lookup(self.buffer_views, image["bufferView"], "bufferView")
            buffer = self.lookup(self.buffers, view.get("buffer"), "buffer")
            start = view.get("byteOffset", 0)
            end = start + view.get("byteLength", 0)
            if end > len(buffer):
                raise ContainerParseError("image #{} bufferView runs past the end of its buffer".format(i))
            return buffer[start:end]

        if "uri" in image:
            return self.read_uri(image["uri"])

        raise ContainerParseError("image #{} has neither uri nor bufferView".format(i))

    def construct_images(self):
        for i, image in enumerate(self.gltf.get("images", [])):
            data = self.image_bytes(i, image)
            try:
                img = Image.open(io.BytesIO(data))
                rawmode = tile_rawmode(img)
                img.load()
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                raise ContainerParseError("cannot decode image #{}: {}".format(i, e)) from e

            self.images.append(payload_from_image(img, rawmode))

    def load(self) -> Asset:
        return Asset(self.gltf, tuple(self.buffers), tuple(self.images))


def load_asset(path) -> Asset:
    return GLTFImport(path).load()
