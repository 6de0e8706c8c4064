import base64
import json

import pytest

from helpers import glb_bytes, pad4, png_bytes

MESH_DOCUMENT = {
    "asset": {"version": "2.0", "generator": "tests"},
    "scene": 0,
    "scenes": [{"nodes": [0]}],
    "nodes": [{"mesh": 0, "name": "Cube", "extras": {"tag": "root"}}],
    "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "material": 0}]}],
    "materials": [{"name": "Mat", "pbrMetallicRoughness": {"baseColorTexture": {"index": 0}}}],
    "accessors": [{"bufferView": 0, "componentType": 5121, "count": 10, "type": "SCALAR"}],
    "bufferViews": [{"buffer": 0, "byteOffset": 0, "byteLength": 10}],
}


@pytest.fixture
def document():
    return json.loads(json.dumps(MESH_DOCUMENT))


@pytest.fixture
def make_gltf(tmp_path):
    """Write a .gltf with data URI buffers and PNG images stored next to it."""

    def make(document, buffers=(), images=(), name="asset.gltf"):
        document = dict(document)
        document["buffers"] = [
            {"byteLength": len(b), "uri": "data:application/octet-stream;base64," + base64.b64encode(b).decode()}
            for b in buffers
        ]
        document["images"] = []
        for i, img in enumerate(images):
            filename = "texture {}.png".format(i)
            img.save(tmp_path / filename)
            document["images"].append({"uri": filename.replace(" ", "%20"), "name": "tex{}".format(i)})

        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path

    return make


@pytest.fixture
def make_glb(tmp_path):
    """Write a .glb whose images live in bufferViews of the binary chunk."""

    def make(document, geometry=b"", images=(), name="asset.glb"):
        document = dict(document)
        blob = bytearray(geometry)
        views = list(document.get("bufferViews", []))
        document["images"] = []
        for i, img in enumerate(images):
            data = png_bytes(img)
            blob = bytearray(pad4(bytes(blob), b"\0"))
            views.append({"buffer": 0, "byteOffset": len(blob), "byteLength": len(data)})
            blob += data
            document["images"].append({"bufferView": len(views) - 1, "mimeType": "image/png", "name": "tex{}".format(i)})

        document["bufferViews"] = views
        document["buffers"] = [{"byteLength": len(blob)}]
        path = tmp_path / name
        path.write_bytes(glb_bytes(document, bytes(blob)))
        return path

    return make
