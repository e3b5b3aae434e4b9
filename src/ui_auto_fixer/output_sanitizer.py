"""
Output Sanitizer

Removes terminal colour/control sequences from captured runner output.
Mocha and ExTester print coloured text, which breaks line-anchored patterns.
"""

import re

# ESC [ parameter bytes, intermediate bytes, final byte
ANSI_CSI_PATTERN = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def strip_ansi(raw: str) -> str:
    """
    Remove ANSI CSI escape sequences from text.

    Every other byte, including non-ANSI control characters, passes
    through unchanged.

    Args:
        raw: Terminal text that may contain escape sequences

    Returns:
        Text without CSI sequences
    """
    if not raw:
        return ""
    # Removing one sequence can join an ESC with a following "[...": repeat until stable
    cleaned = ANSI_CSI_PATTERN.sub("", raw)
    while cleaned != raw:
        raw, cleaned = cleaned, ANSI_CSI_PATTERN.sub("", cleaned)
    return cleaned


sanitize = strip_ansi
