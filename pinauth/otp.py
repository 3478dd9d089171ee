"""
One-time code derivation.

HOTP-style dynamic truncation over HMAC-SHA1, keyed directly with the raw
PIN bytes and counted in 30-second windows of wall-clock milliseconds.

Security Note:
    Keying the HMAC with a 6-digit PIN gives at most 10**6 distinct
    secrets. Output compatibility depends on it, so it is kept; do not
    reuse this scheme where a standard TOTP shared secret is expected.
"""
import struct

from cryptography.hazmat.primitives import hashes, hmac

from .conf import WINDOW_MILLIS
from .exceptions import InvalidParameter

MIN_DIGITS = 1
MAX_DIGITS = 9


def time_window(time_millis: int) -> int:
    """Return the 30-second window index containing time_millis."""
    if time_millis < 0:
        raise InvalidParameter(f"time_millis must be non-negative, got {time_millis}")
    return time_millis // WINDOW_MILLIS


def remaining_fraction(time_millis: int) -> float:
    """Fraction of the current window still to run, in (0, 1]."""
    elapsed = time_millis - time_window(time_millis) * WINDOW_MILLIS
    return 1 - (elapsed / WINDOW_MILLIS)


def dynamic_truncate(digest: bytes) -> int:
    """Pick 4 bytes at the offset given by the last nibble; clear the top bit."""
    offset = digest[-1] & 0x0F
    return (
        ((digest[offset] & 0x7F) << 24)
        | (digest[offset + 1] << 16)
        | (digest[offset + 2] << 8)
        | digest[offset + 3]
    )


def generate_code(secret: bytes, time_millis: int, digits: int = 6) -> str:
    """Derive the code for the window containing time_millis.

    Args:
        secret: HMAC key (the PIN's ASCII bytes).
        time_millis: Unix time in milliseconds.
        digits: Code length, 1..9.

    Returns:
        Zero-padded decimal string of exactly ``digits`` characters.

    Raises:
        InvalidParameter: If digits is out of range, time_millis is
            negative, or secret is not bytes.
    """
    if isinstance(digits, bool) or not isinstance(digits, int) \
            or not MIN_DIGITS <= digits <= MAX_DIGITS:
        raise InvalidParameter(
            f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}, got {digits!r}"
        )
    if not isinstance(secret, (bytes, bytearray)):
        raise InvalidParameter("secret must be bytes")
    counter = struct.pack(">Q", time_window(time_millis))
    mac = hmac.HMAC(bytes(secret), hashes.SHA1())
    mac.update(counter)
    code = dynamic_truncate(mac.finalize()) % (10 ** digits)
    return str(code).zfill(digits)
