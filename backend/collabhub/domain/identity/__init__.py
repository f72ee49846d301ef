"""Identity resolution for socket handshakes and HTTP requests."""

from .models import Identity
from .resolver import IdentityResolver, Unauthenticated

__all__ = ["Identity", "IdentityResolver", "Unauthenticated"]
