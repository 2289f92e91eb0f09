"""
Photos and videos are stored inline on the task, as data URLs.
"""
import base64
import binascii
import mimetypes
import re
from typing import Optional

DEFAULT_MIME_TYPE = "application/octet-stream"

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[\w-]+=[^;,]+)*)(?P<base64>;base64)?,(?P<payload>.*)$", re.DOTALL)


class MediaError(ValueError):
    """Raised when an uploaded file cannot be turned into, or read back from, a data URL."""
    pass


class MediaTooLargeError(MediaError):
    pass


def guess_mime_type(filename: Optional[str], declared: Optional[str] = None) -> str:
    if declared and declared != DEFAULT_MIME_TYPE:
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def to_data_url(content: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    if not isinstance(content, (bytes, bytearray)):
        raise MediaError("Media content must be bytes.")
    payload = base64.b64encode(bytes(content)).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{payload}"


def parse_data_url(url: str) -> tuple[str, bytes]:
    """
    Returns the mime type and the decoded bytes of a data URL.
    """
    match = DATA_URL_PATTERN.match(url or "")
    if match is None:
        raise MediaError("Not a data URL.")
    mime_type = match.group("mime") or "text/plain"
    payload = match.group("payload")
    if match.group("base64"):
        try:
            return mime_type, base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MediaError(f"Invalid base64 payload in data URL: {e}") from e
    return mime_type, payload.encode("utf-8")


def check_size(content: bytes, max_bytes: int, filename: Optional[str] = None) -> None:
    if max_bytes > 0 and len(content) > max_bytes:
        name = filename or "file"
        raise MediaTooLargeError(f"{name} is {len(content)} bytes, the limit is {max_bytes} bytes.")


def file_to_data_url(content: bytes, filename: Optional[str] = None, declared_mime_type: Optional[str] = None, max_bytes: int = 0) -> str:
    check_size(content, max_bytes, filename)
    return to_data_url(content, guess_mime_type(filename, declared_mime_type))
