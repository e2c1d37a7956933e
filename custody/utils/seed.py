"""
Seed de l'admin initial / First admin seeding.
Crée le compte admin par défaut au premier démarrage si aucune personne n'existe.
Creates default admin account on first startup if no person exists.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.config import settings
from custody.models.person import Person, PersonRole
from custody.utils.auth import hash_password

logger = logging.getLogger(__name__)


async def seed_admin(session: AsyncSession) -> None:
    """Créer l'admin si la table est vide / Create admin if no person exists."""
    result = await session.execute(select(func.count(Person.id)))
    count = result.scalar()

    if count == 0:
        admin = Person(
            email=settings.SEED_ADMIN_EMAIL,
            full_name="Administrator",
            role=PersonRole.ADMIN,
            hashed_password=hash_password(settings.SEED_ADMIN_PASSWORD),
            is_active=True,
        )
        session.add(admin)
        await session.commit()
        logger.info("Admin initial créé / First admin created: %s", settings.SEED_ADMIN_EMAIL)
    else:
        logger.info("%d personne(s) existante(s), seed ignoré / %d existing person(s), seed skipped", count, count)
