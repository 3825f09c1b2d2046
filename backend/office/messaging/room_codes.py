"""Six-character room codes drawn from an alphabet without look-alike characters."""

import secrets
from collections.abc import Collection

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no 0/O, 1/I
ROOM_CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 100


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def generate_unique_room_code(existing: Collection[str]) -> str:
    """Generate a code not present in ``existing``.

    Raises RuntimeError if no free code turns up after MAX_CODE_ATTEMPTS tries,
    which only happens when the code space is nearly exhausted.
    """
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_room_code()
        if code not in existing:
            return code
    raise RuntimeError(f"could not generate a unique room code after {MAX_CODE_ATTEMPTS} attempts")


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


def is_valid_room_code(code: str) -> bool:
    return len(code) == ROOM_CODE_LENGTH and all(c in ROOM_CODE_ALPHABET for c in code)
