from urllib.parse import urlparse
from typing import Tuple


BOM = "\ufeff"


def normalize_url(raw: str) -> str:
    """Drop a leading byte-order mark and surrounding whitespace."""
    url = raw.strip()
    if url.startswith(BOM):
        url = url[len(BOM):].strip()
    return url


def validate_url(url: str) -> Tuple[bool, str]:
    if not url:
        return False, "URL cannot be empty"

    try:
        parsed = urlparse(url)
    except ValueError as e:
        return False, f"URL parsing error: {str(e)}"

    if parsed.scheme not in ["http", "https"]:
        return False, f"Invalid URL scheme: {parsed.scheme or 'none'} (must be http or https)"

    if not parsed.netloc:
        return False, "Invalid URL format: missing domain"

    return True, ""
