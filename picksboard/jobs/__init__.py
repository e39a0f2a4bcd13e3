from . import build_btts_picks  # noqa: F401

__all__ = [
    "build_btts_picks",
]
