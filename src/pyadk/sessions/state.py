"""
State scoping helpers.

Keys prefixed ``app:`` are shared by every session of an app, ``user:`` by
every session of a user, ``temp:`` live only for the current invocation and
unprefixed keys belong to the session itself.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..events import APP_PREFIX, TEMP_PREFIX, USER_PREFIX


@dataclass
class StateDeltas:
    """A state mapping split by scope, with scope prefixes stripped."""

    app: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)
    session: dict[str, Any] = field(default_factory=dict)


def split_state_delta(state: Mapping[str, Any] | None) -> StateDeltas:
    """Split a state mapping by key prefix. Temporary keys are dropped."""
    deltas = StateDeltas()
    if not state:
        return deltas

    for key, value in state.items():
        if key.startswith(TEMP_PREFIX):
            continue
        if key.startswith(APP_PREFIX):
            deltas.app[key[len(APP_PREFIX):]] = value
        elif key.startswith(USER_PREFIX):
            deltas.user[key[len(USER_PREFIX):]] = value
        else:
            deltas.session[key] = value

    return deltas


def merge_scoped_state(
    session_state: dict[str, Any],
    app_state: dict[str, Any] | None = None,
    user_state: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Combine session state with app and user state under their prefixes."""
    merged = dict(session_state)
    for key, value in (app_state or {}).items():
        merged[APP_PREFIX + key] = value
    for key, value in (user_state or {}).items():
        merged[USER_PREFIX + key] = value
    return merged
