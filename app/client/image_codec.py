"""
Text encoding for captured images.

Images are kept in the offline queue as data URLs so the whole queue stays
one JSON document. Environments without image support may store a bare
base64 payload with no mime prefix; decoding falls back to a caller-chosen
mime type in that case.
"""
import base64
import binascii
import re
from typing import Tuple

DATA_URL_PATTERN = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "image/heic": "heic",
    "application/octet-stream": "bin",
}

def encode_data_url(data: bytes, mime: str) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime or 'application/octet-stream'};base64,{payload}"

def decode_data_url(text: str, fallback_mime: str = "application/octet-stream") -> Tuple[bytes, str]:
    """Return (bytes, mime) from a data URL or a bare base64 string"""
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty image payload")

    match = DATA_URL_PATTERN.match(text.strip())
    if match:
        mime, payload = match.group(1), match.group(2)
    else:
        mime, payload = fallback_mime, text

    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 image payload")
    return data, mime

def extension_for(mime: str) -> str:
    if mime in EXTENSIONS:
        return EXTENSIONS[mime]
    subtype = (mime or "").split("/")[-1].split("+")[0]
    return re.sub(r"[^a-z0-9]", "", subtype.lower()) or "bin"
