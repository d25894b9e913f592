"""Image URL helpers.

Stored image paths are relative (``media/2024/apple.png``), prefixed
(``uploads/media/...``) or absolute URLs on hosts the shop has since moved
away from. Everything handed to clients points at the CDN.
"""

from urllib.parse import urlsplit

from eshop_api.config import Settings, get_settings

LEGACY_HOSTS = ("https://dev.uzvi.in/", "https://admin.uzvi.in/")
MEDIA_PATH = "uploads/media/2024/"
IMAGE_SIZES = {"sm": "thumb-sm", "md": "thumb-md", "lg": "thumb"}


def format_image_url(path: str | None, size: str = "", settings: Settings | None = None) -> str:
    """Build the CDN URL for a stored image path.

    Args:
        path: Stored path or URL
        size: ``sm``/``thumb`` or ``md`` for a thumbnail, empty for the original
        settings: Settings to read CDN locations from. Defaults to global settings.

    Returns:
        Absolute URL; the placeholder image when ``path`` is empty
    """
    settings = settings or get_settings()
    base_url = settings.image_base_url

    if not path:
        return settings.no_image_url

    if path.startswith(("http://", "https://")):
        if path.startswith(base_url):
            return path
        for host in LEGACY_HOSTS:
            if path.startswith(host):
                return base_url + path[len(host):]
        return base_url + urlsplit(path).path.lstrip("/")

    filename = path.rsplit("/", 1)[-1]
    if size in ("thumb", "sm"):
        return f"{base_url}{MEDIA_PATH}{IMAGE_SIZES['sm']}/{filename}"
    if size == "md":
        return f"{base_url}{MEDIA_PATH}{IMAGE_SIZES['md']}/{filename}"

    full_path = path if path.startswith("uploads/") else f"uploads/{path}"
    return f"{base_url}{full_path}"


def image_url(path: str | None, size: str = "", settings: Settings | None = None) -> str:
    """Like ``format_image_url`` but returns ``""`` for an empty path."""
    if not path:
        return ""
    return format_image_url(path, size, settings)
