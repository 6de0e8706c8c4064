import io
import json
import struct
import zlib

from PIL import Image


def pattern_image(mode, size):
    """Deterministic image with enough detail for JPEG sizes to depend on quality."""
    width, height = size
    channels = len(Image.new(mode, (1, 1)).getbands())
    pixels = bytes(
        ((x * 7 + y * 13 + c * 50) ^ (x * y)) % 256 for y in range(height) for x in range(width) for c in range(channels)
    )
    return Image.frombytes(mode, size, pixels)


def png_bytes(img):
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def jpeg_image(data):
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def pad4(data, fill):
    return data + fill * ((4 - len(data) % 4) % 4)


def glb_bytes(document, blob):
    json_chunk = pad4(json.dumps(document).encode("utf-8"), b" ")
    chunks = struct.pack("<II", len(json_chunk), 0x4E4F534A) + json_chunk
    if blob is not None:
        bin_chunk = pad4(blob, b"\0")
        chunks += struct.pack("<II", len(bin_chunk), 0x004E4942) + bin_chunk
    return struct.pack("<4sII", b"glTF", 2, 12 + len(chunks)) + chunks


def png16_bytes(mode, size):
    """16 bits per sample PNG, which Pillow itself cannot write for colour modes."""
    color_type, channels = {"LA": (4, 2), "RGB": (2, 3), "RGBA": (6, 4)}[mode]
    width, height = size

    def chunk(kind, data):
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    rows = b"".join(
        b"\0" + b"".join(struct.pack(">H", (x * 4099 + y * 257 + c) % 65536) for x in range(width) for c in range(channels))
        for y in range(height)
    )
    header = struct.pack(">IIBBBBB", width, height, 16, color_type, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IDAT", zlib.compress(rows)) + chunk(b"IEND", b"")
