"""Easing curves mapping normalized progress onto normalized progress."""

from collections.abc import Callable

EasingFunction = Callable[[float], float]


def linear(t: float) -> float:
    return t


def ease_in_quad(t: float) -> float:
    return t * t


def ease_out_quad(t: float) -> float:
    return t * (2 - t)


def ease_in_out_quad(t: float) -> float:
    if t < 0.5:  # noqa: PLR2004
        return 2 * t * t
    return -1 + (4 - 2 * t) * t


def ease_in_cubic(t: float) -> float:
    return t * t * t


def ease_out_cubic(t: float) -> float:
    u = t - 1
    return u * u * u + 1


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:  # noqa: PLR2004
        return 4 * t * t * t
    return (t - 1) * (2 * t - 2) * (2 * t - 2) + 1


EASINGS: dict[str, EasingFunction] = {
    "linear": linear,
    "easeInQuad": ease_in_quad,
    "easeOutQuad": ease_out_quad,
    "easeInOutQuad": ease_in_out_quad,
    "easeInCubic": ease_in_cubic,
    "easeOutCubic": ease_out_cubic,
    "easeInOutCubic": ease_in_out_cubic,
}
"""Canonical easing names, as sent by the editor."""

# Names the editor stores on routes ("ease-in-out") and the legacy "easeInOut".
_ALIASES: dict[str, EasingFunction] = {
    "easein": ease_in_quad,
    "easeout": ease_out_quad,
    "easeinout": ease_in_out_quad,
}

_LOOKUP: dict[str, EasingFunction] = {
    **{name.lower(): fn for name, fn in EASINGS.items()},
    **_ALIASES,
}

EASING_NAMES = tuple(EASINGS)


def _normalize(name: str) -> str:
    return name.replace("-", "").replace("_", "").lower()


def get_easing(name: str | None) -> EasingFunction:
    """
    Look up an easing function by name.

    Lookup ignores case, dashes and underscores so ``ease-in-out``,
    ``easeInOut`` and ``EASE_IN_OUT`` resolve to the same curve.
    Unknown or empty names fall back to :func:`linear`.
    """
    if not name:
        return linear
    return _LOOKUP.get(_normalize(name), linear)


def apply_easing(name: str | None, t: float) -> float:
    """Clamp ``t`` to [0, 1] and run it through the named easing."""
    t = min(1.0, max(0.0, float(t)))
    return get_easing(name)(t)


__all__ = [
    "EASINGS",
    "EASING_NAMES",
    "EasingFunction",
    "apply_easing",
    "get_easing",
]
