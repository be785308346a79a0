import secrets
import string
from typing import Optional

from src.specs.common.datetime_utils import now_ms

_BASE36 = string.digits + string.ascii_lowercase


def new_poster_id(timestamp_ms: Optional[int] = None) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"poster_{timestamp_ms if timestamp_ms is not None else now_ms()}_{suffix}"
