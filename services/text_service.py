"""
Text normalization for header labels.

Headers exported by other tools often carry a UTF-8 byte-order mark or are
wrapped in double quotes (CSV habits). Both pipelines normalize header text
with these helpers before comparing it to declared labels.
"""

BOM = '\ufeff'
QUOTE = '"'


def clear_unicode(text: str) -> str:
    """Remove a single leading byte-order mark and surrounding whitespace."""
    if text.startswith(BOM):
        text = text[len(BOM):]
    return text.strip()


def remove_double_quote(text: str) -> str:
    """
    Strip one pair of double quotes wrapping the whole string.

    Examples:
        '"Age"'         → 'Age'
        '"Half"Quoted'  → '"Half"Quoted'
        '""Name""'      → '"Name"'
    """
    if len(text) >= 2 and text.startswith(QUOTE) and text.endswith(QUOTE):
        return text[1:-1]
    return text


def normalize(text) -> str:
    """
    Normalize header text for label matching.

    Steps, in order: drop a leading BOM, trim whitespace, strip one
    wrapping pair of double quotes.

    Args:
        text: Raw header text (None is treated as empty)

    Returns:
        Normalized text
    """
    if text is None:
        return ''
    return remove_double_quote(clear_unicode(str(text)))
