"""Series name extraction from release-group style folder names."""

import re

# Opening bracket -> closing bracket, including full-width variants
BRACKETS: dict[str, str] = {
    "[": "]",
    "(": ")",
    "【": "】",
    "（": "）",
}

_CLOSING_BRACKETS = set(BRACKETS.values())


def extract_series_name(raw_name: str) -> str:
    """Guess the series name hidden in a folder or file name.

    Most release folders look like ``Name [tags]`` and the bare text before
    the first top-level bracket is the name. Folders made only of bracket
    groups usually carry the release group first and the name second, e.g.
    ``[Group][Name][1080p]``.

    Args:
        raw_name: Folder or file name without its parent path

    Returns:
        The bare top-level segment when one precedes a bracket, otherwise the
        second top-level bracket group (or the first when only one exists),
        otherwise the trimmed input
    """
    if not raw_name:
        return ""

    groups: list[str] = []
    stack: list[str] = []
    current = ""

    for char in raw_name:
        if char in BRACKETS:
            if not stack:
                current = current.strip()
                if current:
                    return current
            stack.append(char)
        elif char in _CLOSING_BRACKETS and stack and BRACKETS[stack[-1]] == char:
            stack.pop()
            if not stack:
                groups.append(current + char)
                current = ""
                continue

        current += char

    if len(groups) > 1:
        return groups[1]
    if groups:
        return groups[0]
    return raw_name.strip()


def get_attribute_value(name: str, attribute: str) -> str | None:
    """Read an ``[attribute=value]`` or ``[attribute-value]`` marker.

    Both square brackets and braces are accepted and the attribute name is
    matched case-insensitively. When several markers exist the last one wins.

    Args:
        name: Folder or file name
        attribute: Attribute name, e.g. ``bangumi``

    Returns:
        The attribute value, or None if the marker is absent
    """
    if not name or not attribute:
        return None

    pattern = re.compile(
        r"[\[{]\s*" + re.escape(attribute) + r"\s*[=-]\s*([^\]}]+?)\s*[\]}]",
        re.IGNORECASE,
    )
    matches = pattern.findall(name)
    return matches[-1] if matches else None
