"""
Command-line front end.

usage:
    stl-thumb part.stl part.png             # 1024x768 PNG
    stl-thumb part.3mf thumb.jpg -s 256     # 256x256 JPEG
    cat part.stl | stl-thumb - -f png > thumb.png
    stl-thumb part.obj -x -vv               # preview window, debug logging
"""
import argparse
import logging
import sys

from stlthumb.io.image_writer import IMAGE_FORMATS
from stlthumb.thumbnail.config import ANTIALIASING_METHODS, DEFAULTS, Config, Material, parse_hex_color
from stlthumb.thumbnail.core import run
from stlthumb.thumbnail.environment import apply_driver_overrides
from stlthumb.thumbnail.errors import ThumbnailError

log = logging.getLogger('stlthumb')

_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(verbosity: int = 0, stream=None) -> logging.Logger:
    """Attach one stderr handler to the package logger; -v raises the level."""
    level = _LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)]
    if not log.handlers:
        h = logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
        log.addHandler(h)
    for h in log.handlers:
        h.setLevel(level)
    log.setLevel(level)
    return log


def _rgba(text):
    try:
        return parse_hex_color(text, components=4)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _rgb(text):
    try:
        return parse_hex_color(text, components=3)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _positive(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid size {text!r}')
    if value <= 0:
        raise argparse.ArgumentTypeError(f'size must be positive, got {value}')
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='stl-thumb', description='Render thumbnails of STL, OBJ and 3MF models')
    parser.add_argument('model_file', metavar='MODEL_FILE',
                        help='STL, OBJ or 3MF file. Use "-" to read an STL model from stdin.')
    parser.add_argument('img_file', metavar='IMG_FILE', nargs='?', default=None,
                        help='Thumbnail image file. If this is omitted, the image data will be dumped to stdout.')
    parser.add_argument('-s', '--size', type=_positive, help='Size of thumbnail (square)')
    parser.add_argument('-f', '--format', metavar='{' + ','.join(sorted(IMAGE_FORMATS)) + '}',
                        help='Image format; defaults to the IMG_FILE extension, then PNG')
    parser.add_argument('-a', '--antialiasing', choices=ANTIALIASING_METHODS, default=DEFAULTS['antialiasing'],
                        help='Antialiasing method (default: %(default)s)')
    parser.add_argument('-b', '--background', type=_rgba, default=DEFAULTS['background'], metavar='RRGGBBAA',
                        help='Background color (default: transparent white)')
    parser.add_argument('-m', '--material', type=_rgb, nargs=3, metavar=('AMBIENT', 'DIFFUSE', 'SPECULAR'),
                        help='Model colors as three RRGGBB values')
    parser.add_argument('--recalc-normals', dest='recalc_normals', action='store_true',
                        help='Ignore normals stored in the model and compute them from the triangles')
    parser.add_argument('-x', '--visible', action='store_true', help='Display the thumbnail in a window')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='Increase message verbosity')
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    if args.size is not None:
        width = height = args.size
    else:
        width, height = DEFAULTS['width'], DEFAULTS['height']
    material = Material(*args.material) if args.material else Material()
    return Config(
        model_filename=args.model_file,
        img_filename=args.img_file,
        format=args.format,
        width=width,
        height=height,
        visible=args.visible,
        verbosity=args.verbose,
        material=material,
        background=args.background,
        antialiasing=args.antialiasing,
        recalc_normals=args.recalc_normals,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    config = config_from_args(args)
    apply_driver_overrides()
    try:
        run(config)
    except ThumbnailError as exc:
        log.error('Application error: %s', exc)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
