"""URL normalization used for dedup on both sides of the sync boundary."""

from memory_agent.errors import MalformedInput


def normalize_url(url: str) -> str:
    """
    Strip everything from the first '?' or '#' onward.

    Two URLs that differ only in query string or fragment normalize to the
    same value, which is what the visited set and the server-side lookback
    check compare.

    Args:
        url: Raw page URL

    Returns:
        The normalized URL

    Raises:
        MalformedInput: If url is not a non-empty string
    """
    if not isinstance(url, str):
        raise MalformedInput(f"URL must be a string, got {type(url).__name__}")

    cut = len(url)
    for marker in ("?", "#"):
        index = url.find(marker)
        if index != -1:
            cut = min(cut, index)

    normalized = url[:cut].strip()
    if not normalized:
        raise MalformedInput(f"URL has no location part: {url!r}")
    return normalized
