from .embed import reassemble, write_gltf
from .gltf import load_asset
from .raw import TranscodeParams, fit_dimensions, transcode_all

OUTPUT_FILENAME = "smolinator_output.gltf"


def smolinate(infile, params: TranscodeParams, outfile=OUTPUT_FILENAME, jobs=1):
    """
    Shrink every texture of a glTF asset and write it as a single self-contained .gltf.

    Textures are re-encoded as JPEG, so running this again on its own output
    keeps losing image quality. Buffers are copied byte for byte.
    """
    asset = load_asset(infile)
    print("{}: {}".format(infile, asset))

    encoded = transcode_all(asset.images, params, jobs)

    references = asset.document.get("images", [])
    for i, (payload, data) in enumerate(zip(asset.images, encoded)):
        width, height = fit_dimensions(payload.width, payload.height, params.max_dimension)
        name = references[i].get("name", "noname {}".format(i))
        print("image #{}: {} {} -> {}x{} JPEG, {} bytes".format(i + 1, name, payload, width, height, len(data)))

    root = reassemble(asset, encoded)
    write_gltf(root, outfile)
    print("-> {}".format(outfile))

    return root
