from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

ScoringHook = Callable[[str, Mapping[str, Any]], None]


def emit(hook: Optional[ScoringHook], event: str, payload: Mapping[str, Any]) -> None:
    if hook is not None:
        hook(event, payload)
