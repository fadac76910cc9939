"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens:
``UP``/``DOWN``/``LEFT``/``RIGHT``, ``ESC``, ``ENTER_CR``/``ENTER_LF``,
``CTRL_<letter>``, ``ALT_<key>``, and single decoded characters.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_ARROWS = {b"A": "UP", b"B": "DOWN", b"C": "RIGHT", b"D": "LEFT"}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def _decode_char(fd: int, ch: bytes) -> str:
    """Complete a multi-byte UTF-8 character that starts with ``ch``."""
    data = ch
    for _ in range(_utf8_length(ch[0]) - 1):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")


def _control_token(ch: bytes) -> str | None:
    code = ch[0]
    if ch == b"\r":
        return "ENTER_CR"
    if ch == b"\n":
        return "ENTER_LF"
    if ch == b"\t":
        return "TAB"
    if ch in {b"\x08", b"\x7f"}:
        return "BACKSPACE"
    if 1 <= code <= 26:
        return "CTRL_" + chr(ord("A") + code - 1)
    return None


def _read_csi(fd: int) -> str:
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in _ARROWS:
        return _ARROWS[seq]
    if seq == b"H":
        return "HOME"
    if seq == b"F":
        return "END"
    if seq == b"1":
        # Modified arrows: ESC [ 1 ; <mod> <dir>
        if _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS) != b";":
            return "ESC"
        mod = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        direction = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if mod is None or direction not in _ARROWS:
            return "ESC"
        if mod == b"2":
            return "SHIFT_" + _ARROWS[direction]
        if mod in {b"3", b"9"}:
            return "ALT_" + _ARROWS[direction]
        if mod == b"5":
            return "CTRL_" + _ARROWS[direction]
        return "ESC"
    if seq in {b"5", b"6"}:
        if _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS) != b"~":
            return "ESC"
        return "PAGE_UP" if seq == b"5" else "PAGE_DOWN"
    return "ESC"


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Read one key token from ``fd``; return ``""`` on timeout or EOF."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    if ch != b"\x1b":
        token = _control_token(ch)
        if token is not None:
            return token
        return _decode_char(fd, ch)

    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq == b"[":
        return _read_csi(fd)
    if seq in {b"b", b"B"}:
        return "ALT_LEFT"
    if seq in {b"f", b"F"}:
        return "ALT_RIGHT"
    if seq != b"\x1b" and 0x20 < seq[0] < 0x7F:
        return "ALT_" + seq.decode("ascii").upper()
    _PENDING_BYTES.append(seq)
    return "ESC"


__all__ = ["ESC_SEQUENCE_TIMEOUT_MS", "read_key"]
