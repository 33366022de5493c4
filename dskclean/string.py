def short_id(resource_id: str, length: int = 12) -> str:
    """
    Shorten a runtime identifier the way `docker ps` displays it.

    Example:
        >>> short_id("sha256:4f1c0e3a9b2d7e6f5a4b3c2d1e0f")
        '4f1c0e3a9b2d'
        >>> short_id("my-volume")
        'my-volume'
    """
    if resource_id is None:
        return ""
    if resource_id.startswith("sha256:"):
        resource_id = resource_id[len("sha256:") :]
    return resource_id[:length]


def format_memory(nbytes: int) -> str:
    """
    Byte count in binary units with two decimals, e.g. '1.50 GB'. Below 1 KB the
    exact count is kept.
    """
    if nbytes < 1024:
        return f"{nbytes} B"
    size = float(nbytes)
    for unit in ("KB", "MB", "GB"):
        size /= 1024
        if size < 1024:
            return f"{size:.2f} {unit}"
    return f"{size / 1024:.2f} TB"
