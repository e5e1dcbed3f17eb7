"""Marketing email providers"""

from .beehiiv import BeehiivClient
from .instantly import InstantlyClient

__all__ = ["BeehiivClient", "InstantlyClient"]
