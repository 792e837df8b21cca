"""Short numeric transfer codes."""

import secrets
from typing import Callable

from ..config import CODE_MAX, CODE_MIN


def generate_code(
    is_live: Callable[[str], bool],
    randbelow: Callable[[int], int] = secrets.randbelow,
) -> str:
    """Draw a 6-digit code that is not held by any live transfer.

    Live transfers are bounded by the upload quotas to far fewer than the
    900,000 available codes, so the redraw loop terminates quickly.
    """
    span = CODE_MAX - CODE_MIN + 1
    while True:
        code = str(CODE_MIN + randbelow(span))
        if not is_live(code):
            return code
