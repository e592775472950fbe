"""Terminal output cleanup for display.

Session output is opaque text. For display only, terminal escape sequences
(colors, cursor movement, OSC titles/hyperlinks) are stripped; the raw
session buffer keeps them.
"""

import codecs
import re
from dataclasses import dataclass

# CSI: ESC [ params intermediates final
_CSI_PATTERN = r"\x1b\[[0-?]*[ -/]*[@-~]"
# OSC: ESC ] ... terminated by BEL or ESC \
_OSC_PATTERN = r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
# Other two-character escapes (charset selection, keypad modes, ...)
_ESC_PATTERN = r"\x1b[@-Z\\-_]|\x1b[()][0-9A-Za-z]"
# 8-bit CSI
_C1_CSI_PATTERN = r"\x9b[0-?]*[ -/]*[@-~]"

ANSI_PATTERN = re.compile("|".join((_OSC_PATTERN, _CSI_PATTERN, _C1_CSI_PATTERN, _ESC_PATTERN)))

# Carriage returns not followed by a newline are spinner redraws
_BARE_CR_PATTERN = re.compile(r"\r(?!\n)")

# Escape sequence or CR cut off at the end of a read
_INCOMPLETE_TAIL_PATTERN = re.compile(
    r"(?:\x1b(?:\[[0-?]*[ -/]*|\][^\x07\x1b]*\x1b?|[()])?|\x9b[0-?]*[ -/]*|\r)\Z"
)

# Longest tail held back; an unterminated sequence beyond this is released as is
MAX_PENDING_CHARS = 4096


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from text.

    Args:
        text: Raw terminal output.

    Returns:
        Text without escape sequences; CRLF becomes LF and bare CR becomes LF.

    Examples:
        >>> strip_ansi("\\x1b[32mok\\x1b[0m")
        'ok'

    """
    cleaned = ANSI_PATTERN.sub("", text)
    cleaned = cleaned.replace("\r\n", "\n")
    return _BARE_CR_PATTERN.sub("\n", cleaned)


@dataclass
class OutputChunk:
    """One decoded chunk of session output.

    Attributes:
        raw: Decoded text including escape sequences.
        display: Text with escape sequences stripped.
        is_error: True if the chunk came from stderr.

    """

    raw: str
    display: str
    is_error: bool = False


class ChunkDecoder:
    """Incremental decoder for one output stream.

    Reads arrive at arbitrary byte boundaries. Multi-byte characters, escape
    sequences and CRLF pairs split across reads are held back until the
    next feed so that display text never carries a partial sequence.
    """

    def __init__(self, is_error: bool = False) -> None:
        self.is_error = is_error
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, data: bytes) -> OutputChunk | None:
        """Decode bytes; return a chunk, or None if nothing complete yet."""
        text = self._pending + self._decoder.decode(data)
        self._pending = ""

        match = _INCOMPLETE_TAIL_PATTERN.search(text)
        if match is not None and len(text) - match.start() <= MAX_PENDING_CHARS:
            self._pending = text[match.start() :]
            text = text[: match.start()]

        return self._chunk(text)

    def flush(self) -> OutputChunk | None:
        """Emit everything held back at end of stream."""
        text = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return self._chunk(text)

    def _chunk(self, text: str) -> OutputChunk | None:
        if not text:
            return None
        return OutputChunk(raw=text, display=strip_ansi(text), is_error=self.is_error)
