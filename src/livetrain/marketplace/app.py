"""Application factory for the marketplace service."""

import logging
from pathlib import Path

from livetrain.app import App
from livetrain.config import AppConfig
from livetrain.data import Database
from livetrain.marketplace.access import DestinationUrls
from livetrain.marketplace.enrollment import EnrollmentChecker, StoreEnrollmentChecker
from livetrain.marketplace.routes import register_routes
from livetrain.marketplace.store import MarketplaceStore
from livetrain.middleware import AuthConfig, AuthMiddleware, SessionConfig, SessionMiddleware

logger = logging.getLogger("livetrain.server")

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
DEFAULT_DATABASE_URL = "sqlite:///livetrain.db"


def create_app(
    config: AppConfig | None = None,
    *,
    db: Database | None = None,
    checker: EnrollmentChecker | None = None,
) -> App:
    """Build the marketplace ``App``.

    The database comes from *db*, else ``config.database_url``, else a
    ``livetrain.db`` file in the working directory. Migrations run at
    startup. Without a ``secret_key`` only bearer tokens authenticate.
    """
    config = config or AppConfig()
    if db is None:
        db = Database(config.database_url or DEFAULT_DATABASE_URL, echo=config.debug)
    store = MarketplaceStore(db)
    enrollment_checker = checker or StoreEnrollmentChecker(store)
    urls = DestinationUrls.from_config(config)

    app = App(config, db=db, migrations=str(config.migrations_dir or MIGRATIONS_DIR))
    app.provide(AppConfig, lambda: config)
    app.provide(MarketplaceStore, lambda: store)
    app.provide(EnrollmentChecker, lambda: enrollment_checker)
    app.provide(DestinationUrls, lambda: urls)

    if config.secret_key:
        app.add_middleware(SessionMiddleware(SessionConfig(secret_key=config.secret_key)))
        auth = AuthConfig(
            load_user=store.load_user,
            verify_token=store.verify_token,
            login_url=config.login_url,
        )
    else:
        logger.warning("No secret_key configured: session cookies disabled, bearer tokens only")
        auth = AuthConfig(verify_token=store.verify_token, login_url=config.login_url)
    app.add_middleware(AuthMiddleware(auth))

    register_routes(app)
    return app
