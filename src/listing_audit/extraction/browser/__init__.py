from .playwright import PlaywrightListingSession

__all__ = ["PlaywrightListingSession"]
