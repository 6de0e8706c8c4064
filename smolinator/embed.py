import base64
import copy
import json

from .errors import OutputWriteError
from .gltf import Asset

DATA_URI_PREFIX = "data:application/octet-stream;base64,"
JPEG_MIME_TYPE = "image/jpeg"

# carried over from the input descriptors
KEPT_FIELDS = ("name", "extras")


def data_uri(data):
    return DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")


def carry_fields(descriptor):
    return {k: descriptor[k] for k in KEPT_FIELDS if k in descriptor}


def embed_buffers(buffers, descriptors):
    out = []
    for data, desc in zip(buffers, descriptors):
        buf = {"byteLength": len(data), "uri": data_uri(data)}
        buf.update(carry_fields(desc))
        out.append(buf)
    return out


def embed_images(references, encoded):
    assert len(references) == len(encoded)

    out = []
    for ref, data in zip(references, encoded):
        image = {"uri": data_uri(data), "mimeType": JPEG_MIME_TYPE}
        image.update(carry_fields(ref))
        out.append(image)
    return out


def reassemble(asset: Asset, encoded) -> dict:
    """
    Build the output document: every buffer and image inlined as a data URI.

    Images are always JPEG and never bufferView-backed. Everything else in
    the document (nodes, meshes, materials, accessors, bufferViews, ...)
    passes through untouched; the input document is not modified.
    """
    root = copy.deepcopy(asset.document)

    buffers = embed_buffers(asset.buffers, root.get("buffers", []))
    images = embed_images(root.get("images", []), encoded)

    for key, values in (("buffers", buffers), ("images", images)):
        if values:
            root[key] = values
        else:
            root.pop(key, None)

    return root


def write_gltf(root, outfile):
    try:
        with open(outfile, "w", encoding="utf-8") as f:
            json.dump(root, f, indent=2)
    except OSError as e:
        raise OutputWriteError("cannot write {}: {}".format(outfile, e)) from e
