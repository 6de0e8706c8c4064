import argparse
import sys

from .errors import SmolinatorError
from .pipeline import OUTPUT_FILENAME, smolinate
from .raw import TranscodeParams


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="smolinator",
        description="Shrink the textures of a glTF asset and write it as a single self-contained .gltf file",
    )
    parser.add_argument("-i", "--input", required=True, help="glTF (.gltf or .glb) input file")
    parser.add_argument(
        "-m", "--max-texture-dimensions", required=True, type=int, help="limits how big textures can be (pixels)"
    )
    parser.add_argument("-t", "--texture-quality", required=True, type=int, help="JPEG quality (0-100)")
    parser.add_argument("-o", "--output", default=OUTPUT_FILENAME, help="output file (default: %(default)s)")
    parser.add_argument("-j", "--jobs", default=1, type=int, help="textures transcoded in parallel (default: 1)")

    args = parser.parse_args(argv)

    if args.max_texture_dimensions <= 0:
        parser.error("--max-texture-dimensions must be a positive integer")
    if args.texture_quality < 0 or args.texture_quality > 100:
        parser.error("--texture-quality must be between 0 and 100")
    if args.jobs <= 0:
        parser.error("--jobs must be a positive integer")

    return args


def main(argv=None):
    args = parse_args(argv)
    params = TranscodeParams(args.max_texture_dimensions, args.texture_quality)

    try:
        smolinate(args.input, params, args.output, args.jobs)
    except SmolinatorError as e:
        sys.exit("Error - {}".format(e))


if __name__ == "__main__":
    main()
