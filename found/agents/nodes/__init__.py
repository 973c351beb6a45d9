from . import apply, discover, outreach, referral

__all__ = [
    "apply",
    "discover",
    "outreach",
    "referral",
]
