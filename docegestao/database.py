"""Database configuration and initialization (remote backend only)."""
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None


def init_db(app):
    """
    Initialize database connection.

    Returns False (and leaves the globals unset) when no database URL is
    configured, which puts the app in local storage mode.
    """
    global engine, db_session

    database_uri = app.config.get('SQLALCHEMY_DATABASE_URI') or app.config.get('DATABASE_URL')
    if not database_uri:
        return False

    engine_kwargs = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    # SQLite uses a single-connection pool that rejects sizing arguments
    if not database_uri.startswith('sqlite'):
        engine_kwargs.update(pool_size=10, max_overflow=20)

    engine = create_engine(database_uri, **engine_kwargs)

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if db_session is None:
            return
        if exception:
            db_session.rollback()
        db_session.remove()

    return True


def create_tables():
    """Create the remote tables if they do not exist yet."""
    # Register the models on Base.metadata
    import docegestao.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session
