"""Live-training marketplace: sessions, enrollments and the join redirect.

``create_app()`` wires the store, middleware and routes into an ``App``::

    from livetrain.config import AppConfig
    from livetrain.marketplace import create_app

    app = create_app(AppConfig.from_env())
"""

from livetrain.marketplace.access import (
    AccessRequest,
    AccessState,
    Destination,
    DestinationUrls,
    decide_access,
    resolve_session_access,
)
from livetrain.marketplace.app import MIGRATIONS_DIR, create_app
from livetrain.marketplace.enrollment import (
    EnrollmentChecker,
    HttpEnrollmentChecker,
    StoreEnrollmentChecker,
)
from livetrain.marketplace.models import Account, Course, Enrollment, Session
from livetrain.marketplace.navigation import Navigator
from livetrain.marketplace.store import EnrollmentRefusal, MarketplaceStore

__all__ = [
    "MIGRATIONS_DIR",
    "AccessRequest",
    "AccessState",
    "Account",
    "Course",
    "Destination",
    "DestinationUrls",
    "Enrollment",
    "EnrollmentChecker",
    "EnrollmentRefusal",
    "HttpEnrollmentChecker",
    "MarketplaceStore",
    "Navigator",
    "Session",
    "StoreEnrollmentChecker",
    "create_app",
    "decide_access",
    "resolve_session_access",
]
