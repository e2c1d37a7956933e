"""Rate limiting global / Global rate limiter.

Utilise slowapi pour limiter les requetes par IP.
Le PIN coursier (4-6 chiffres) a peu d'entropie : la limite par requete est la vraie defense.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from custody.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
