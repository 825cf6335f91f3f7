"""Conversion between image files and the provider's inline representation.

The provider takes images as base64 text plus a mime type, and returns them
the same way.  Browsers and file readers tend to hand over ``data:`` URIs
(``data:image/jpeg;base64,/9j/4AAQ...``); the helpers here strip that
transport prefix and check that what remains really is base64 image data.

Pillow is used to identify the image format so that the mime type sent to
the provider matches the bytes rather than a file extension.
"""

import base64
import binascii
import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import EncodingError
from .models import SourceImage

logger = logging.getLogger(__name__)

RESULT_MIME_TYPE = "image/png"


def to_data_uri(payload: str, mime_type: str = RESULT_MIME_TYPE) -> str:
    """Wrap base64 *payload* in a ``data:<mime>;base64,`` URI."""
    return f"data:{mime_type};base64,{payload}"


def strip_data_uri(text: str) -> tuple[str | None, str]:
    """Split a ``data:`` URI into its mime type and base64 payload.

    Text without a ``data:`` prefix is returned unchanged as the payload.

    Args:
        text: A data URI or bare base64 text.

    Returns:
        Tuple of ``(mime_type or None, payload)``.

    Raises:
        EncodingError: If *text* is a data URI that is not base64 encoded.
    """
    text = text.strip()
    if not text.startswith("data:"):
        return None, text

    header, sep, payload = text.partition(",")
    if not sep or not header.endswith(";base64"):
        raise EncodingError("Image data is not a base64 data URI")
    mime_type = header[len("data:") : -len(";base64")] or None
    return mime_type, payload


def _identify_mime_type(data: bytes) -> str:
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as e:
        raise EncodingError("File is not a readable image") from e

    mime_type = Image.MIME.get(image_format or "")
    if not mime_type:
        raise EncodingError(f"Unsupported image format: {image_format}")
    return mime_type


def encode_image_bytes(data: bytes) -> SourceImage:
    """Encode raw image bytes for inline upload.

    Raises:
        EncodingError: If *data* is empty or not a recognised image.
    """
    if not data:
        raise EncodingError("Image file is empty")
    mime_type = _identify_mime_type(data)
    return SourceImage(data=base64.b64encode(data).decode("ascii"), mime_type=mime_type)


def encode_image_file(path: Path) -> SourceImage:
    """Read an image file and encode it for inline upload.

    Raises:
        EncodingError: If the file cannot be read or is not an image.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise EncodingError(f"Could not read image file: {e}") from e
    logger.debug("Encoding %s (%d bytes)", path, len(data))
    return encode_image_bytes(data)


def decode_data_uri(text: str) -> SourceImage:
    """Turn a ``data:`` URI (or bare base64 text) into a :class:`SourceImage`.

    The payload is decoded and identified, so the resulting mime type always
    describes the actual bytes.

    Raises:
        EncodingError: If the text is not base64 or does not hold an image.
    """
    _, payload = strip_data_uri(text)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError("Image data is not valid base64") from e
    return encode_image_bytes(data)
