"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

# Import User first - other models have relationships to User
from bendrija.modules.identity.models import User  # noqa: F401

from bendrija.modules.residents.models import Resident  # noqa: F401
from bendrija.modules.slips.models import PaymentSlip, UploadBatch  # noqa: F401
from bendrija.modules.vendors.models import RecognitionPattern  # noqa: F401
