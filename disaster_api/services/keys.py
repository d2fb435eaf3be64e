"""Deterministic cache keys derived from every producer-affecting input."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def cache_key(namespace: str, *parts: Any) -> str:
    """Return `"{namespace}:{sha256}"` over the JSON encoding of `parts`.

    Equal inputs give equal keys; the full digest is kept so distinct long
    inputs sharing a prefix never collide.
    """
    serialized = json.dumps(list(parts), sort_keys=True, default=str, ensure_ascii=False)
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return f"{namespace}:{digest}"
