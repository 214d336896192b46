"""
XML encoding utilities.

HQMF documents arrive as bytes from disk or from measure authoring exports;
decoding prefers the XML declaration, then UTF-8, then chardet guesses with a
latin-1 fallback, so special characters in titles and descriptions survive.
"""

from __future__ import annotations
import logging
import re
from typing import Optional, Tuple, Union

import chardet

logger = logging.getLogger(__name__)

_DECLARED_ENCODING = re.compile(rb'<\?xml[^>]*encoding=["\']([^"\']+)["\']', re.IGNORECASE)


def _declared_encoding(data: bytes) -> Optional[str]:
    match = _DECLARED_ENCODING.search(data[:400])
    if match:
        return match.group(1).decode("ascii", errors="ignore")
    return None


def decode_xml_bytes(raw_bytes: bytes) -> Tuple[str, str, Optional[str], Optional[str]]:
    """
    Decode raw XML bytes using a priority order:
    1) Declared encoding in the XML prolog (if present)
    2) UTF-8
    3) chardet guess
    4) latin-1 fallback
    Returns the decoded string and encoding diagnostics.
    """
    declared = _declared_encoding(raw_bytes)
    sample_size = min(10240, len(raw_bytes))
    detected = chardet.detect(raw_bytes[:sample_size])
    guessed = detected.get("encoding") or None

    xml_content = None
    encoding_used = None
    for enc in [declared, "utf-8", guessed, "latin-1"]:
        if not enc:
            continue
        try:
            xml_content = raw_bytes.decode(enc)
            encoding_used = enc
            break
        except (UnicodeDecodeError, LookupError):
            continue

    if xml_content is None:
        encoding_used = guessed or "utf-8"
        xml_content = raw_bytes.decode(encoding_used, errors="replace")

    if declared and encoding_used != declared:
        logger.warning(f"Declared encoding {declared} failed; decoded as {encoding_used}")

    return xml_content, encoding_used, declared, guessed


def ensure_text(content: Union[str, bytes]) -> str:
    """Return document text, decoding bytes with decode_xml_bytes."""
    if isinstance(content, bytes):
        text, _, _, _ = decode_xml_bytes(content)
        return text
    return content
