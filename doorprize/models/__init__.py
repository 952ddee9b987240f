from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .event import Event  # noqa: F401
from .participant import Participant  # noqa: F401
from .prize import Prize  # noqa: F401
from .winning import Winning  # noqa: F401
from .forfeiture import Forfeiture  # noqa: F401
from .reservation import DrawReservation  # noqa: F401
from .audit import AuditLog  # noqa: F401

__all__ = [
    "Base",
    "Event",
    "Participant",
    "Prize",
    "Winning",
    "Forfeiture",
    "DrawReservation",
    "AuditLog",
]
