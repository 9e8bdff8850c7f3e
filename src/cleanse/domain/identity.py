"""Deterministic identifiers for issues.

An issue is keyed by a hash over an ordered list of key parts, typically the
primary record identifier followed by the rule identifier. Reprocessing the same
pair in a later run resolves to the same issue, which is what makes recording
idempotent across passes.
"""

from __future__ import annotations

import base64
import hashlib
from typing import TYPE_CHECKING, Final

from cleanse.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

COMPOSITE_KEY_DELIMITER: Final[str] = "@@"


def generate_id(parts: Iterable[str]) -> str:
    """Return a URL-safe SHA-256 identifier (43 characters) for ``parts``.

    The result is stable across processes and platforms, order-sensitive and
    case-sensitive. An empty sequence, an empty part or a part containing
    ``COMPOSITE_KEY_DELIMITER`` (or starting or ending with its character) is
    rejected, so distinct sequences never join to the same composite key.
    """

    key_parts = tuple(parts)
    if not key_parts:
        raise ValidationError("At least one key part is required")
    for index, part in enumerate(key_parts):
        if not isinstance(part, str) or not part:
            raise ValidationError(f"Key part at index {index} is null or empty")
        if _collides_with_delimiter(part):
            raise ValidationError(
                f"Key part at index {index} contains or borders the reserved delimiter "
                f"{COMPOSITE_KEY_DELIMITER!r}"
            )

    composite = COMPOSITE_KEY_DELIMITER.join(key_parts)
    digest = hashlib.sha256(composite.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _collides_with_delimiter(part: str) -> bool:
    # "a@" + "@@" + "b" and "a" + "@@" + "@b" would join identically
    marker = COMPOSITE_KEY_DELIMITER[0]
    return COMPOSITE_KEY_DELIMITER in part or part.startswith(marker) or part.endswith(marker)
