from __future__ import annotations

import bendrija.models  # noqa: F401
from bendrija.core.config import settings
from bendrija.core.db import SessionLocal, engine
from bendrija.core.logging import get_logger, log_event
from bendrija.core.models import Base
from bendrija.core.security import hash_password
from bendrija.modules.identity.models import User, UserRole
from bendrija.modules.identity.service import get_user_by_email

logger = get_logger(__name__)


def bootstrap() -> None:
    """Dev-only schema creation, then make sure the configured administrators exist."""
    if settings.environment == "dev" and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)
        log_event(logger, "bootstrap.schema.created", database_url=settings.database_url)

    password = settings.init_admin_password
    emails = {e.strip().lower() for e in (settings.init_admin_email or "").split(",") if e.strip()}
    if not password or not emails:
        return

    with SessionLocal() as session:
        for email in sorted(emails):
            user = get_user_by_email(session, email=email)
            if user is None:
                session.add(
                    User(
                        email=email,
                        full_name="Administratorius",
                        password_hash=hash_password(password),
                        role=UserRole.ADMIN,
                        is_active=True,
                    )
                )
                log_event(logger, "bootstrap.admin.created", email=email)
            elif user.role != UserRole.ADMIN:
                user.role = UserRole.ADMIN
                log_event(logger, "bootstrap.admin.promoted", user_id=str(user.id))
        session.commit()
