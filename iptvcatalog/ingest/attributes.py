"""
Attribute extraction for #EXTINF metadata lines.

Values are located with plain substring search instead of a regex engine;
the parser calls these functions several times per entry on files with
hundreds of thousands of lines.
"""

TVG_ID_KEY = 'tvg-id="'
TVG_NAME_KEY = 'tvg-name="'
TVG_LOGO_KEY = 'tvg-logo="'
GROUP_TITLE_KEY = 'group-title="'

UNKNOWN_NAME = "Unknown"


def extract_attribute(line: str, key: str) -> str | None:
    """
    Return the quoted value that follows ``key`` on ``line``.

    ``key`` must include the trailing ``="`` marker. Returns None when the key
    is missing, the line ends right after it, the closing quote is missing,
    or the value is empty.
    """
    key_start = line.find(key)
    if key_start == -1:
        return None

    value_start = key_start + len(key)
    if value_start >= len(line):
        return None

    value_end = line.find('"', value_start)
    if value_end == -1:
        return None

    value = line[value_start:value_end]
    return value or None


def extract_display_name(line: str) -> str:
    """
    Display name for an #EXTINF line.

    Prefers tvg-name, then the title after the final comma, then "Unknown".
    """
    tvg_name = extract_attribute(line, TVG_NAME_KEY)
    if tvg_name is not None:
        return tvg_name

    last_comma = line.rfind(",")
    if last_comma != -1:
        title = line[last_comma + 1:].strip()
        if title:
            return title
    return UNKNOWN_NAME
