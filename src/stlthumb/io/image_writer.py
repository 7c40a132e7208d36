import io
import logging
import os
import sys
from typing import BinaryIO, Optional

from PIL import Image

from stlthumb.thumbnail.errors import EncodeError

logger = logging.getLogger(__name__)

# accepted spelling -> Pillow format name
IMAGE_FORMATS = {
    'png': 'PNG',
    'jpg': 'JPEG',
    'jpeg': 'JPEG',
    'gif': 'GIF',
    'ico': 'ICO',
    'bmp': 'BMP',
}
DEFAULT_FORMAT = 'png'


def select_format(explicit: Optional[str] = None, filename: Optional[str] = None) -> str:
    """Pick the output format: explicit flag, then file extension, then PNG.

    Returns a key of `IMAGE_FORMATS`. An unknown explicit format or extension
    falls back to PNG with a warning.
    """
    if explicit:
        key = explicit.strip().lower().lstrip('.')
        if key in IMAGE_FORMATS:
            return key
        logger.warning('Unknown image format %r, defaulting to PNG', explicit)
        return DEFAULT_FORMAT
    if filename:
        ext = os.path.splitext(filename)[1].lower().lstrip('.')
        if ext in IMAGE_FORMATS:
            return ext
        if ext:
            logger.warning('Unknown image extension %r, defaulting to PNG', ext)
        else:
            logger.warning('No image extension on %r, defaulting to PNG', filename)
    return DEFAULT_FORMAT


def to_image(pixels: bytes, width: int, height: int) -> Image.Image:
    """Wrap RGBA8 pixels (top row first) in a Pillow image."""
    expected = width * height * 4
    if len(pixels) != expected:
        raise EncodeError(f'pixel buffer holds {len(pixels)} bytes, expected {expected} for {width}x{height} RGBA')
    return Image.frombytes('RGBA', (width, height), bytes(pixels))


def encode_image(pixels: bytes, width: int, height: int, fmt: str = DEFAULT_FORMAT) -> bytes:
    """Encode RGBA8 pixels into `fmt` and return the file contents."""
    pil_format = IMAGE_FORMATS.get(fmt)
    if pil_format is None:
        raise EncodeError(f'unsupported image format {fmt!r}')
    img = to_image(pixels, width, height)
    options = {}
    if pil_format == 'PNG':
        options['compress_level'] = 1
    elif pil_format == 'JPEG':
        img = img.convert('RGB')
    out = io.BytesIO()
    try:
        img.save(out, pil_format, **options)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f'{pil_format} encoding failed: {exc}') from exc
    return out.getvalue()


class ImageWriter:
    """Writes encoded thumbnails to a file or to a binary stream.

    Usage:
        writer = ImageWriter('part.png')          # format from extension
        writer = ImageWriter(None, fmt='jpeg')    # stdout
        writer.write(pixels, width, height)
    """

    def __init__(self, filename: Optional[str] = None, fmt: Optional[str] = None,
                 stream: Optional[BinaryIO] = None):
        self.filename = filename
        self.format = select_format(fmt, filename)
        self._stream = stream

    def write(self, pixels: bytes, width: int, height: int) -> int:
        data = encode_image(pixels, width, height, self.format)
        if self.filename is None:
            stream = self._stream if self._stream is not None else sys.stdout.buffer
            stream.write(data)
            stream.flush()
        else:
            try:
                with open(self.filename, 'wb') as fh:
                    fh.write(data)
            except OSError as exc:
                raise EncodeError(f'cannot write image {self.filename!r}: {exc}') from exc
        logger.info('wrote %d bytes of %s to %s', len(data), IMAGE_FORMATS[self.format],
                    self.filename or 'stdout')
        return len(data)


def write_image(pixels: bytes, width: int, height: int, filename: Optional[str] = None,
                fmt: Optional[str] = None, stream: Optional[BinaryIO] = None) -> int:
    """Encode and write in one call; returns the number of bytes written."""
    return ImageWriter(filename, fmt, stream).write(pixels, width, height)
