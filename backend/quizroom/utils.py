import secrets
import time
from typing import Callable


def now_ms() -> int:
    return int(time.time() * 1000)


def sort_leaderboard(players: list[dict]) -> list[dict]:
    # sorted() is stable, so equal scores keep roster order
    return sorted(players, key=lambda p: -p.get("score", 0))


def generate_code(length: int, alphabet: str, taken: Callable[[str], bool]) -> str:
    """Draw random codes until one is not already in use."""
    while True:
        code = "".join(secrets.choice(alphabet) for _ in range(length))
        if not taken(code):
            return code


def generate_connection_id() -> str:
    return secrets.token_urlsafe(16)
