"""Shared run helpers."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

__all__ = ["maybe_dry_run"]


def maybe_dry_run(
    *,
    dry_run: bool,
    logger: Any,
    message: str,
    message_args: Tuple[Any, ...] = (),
    target: str,
    extra: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """Return dry-run metadata when dry_run flag is set."""

    if not dry_run:
        return None

    logger.info(message, *message_args)
    result: Dict[str, Any] = {"dry_run": True, "target": target}
    if extra:
        result.update(extra)
    return result
