from contextlib import contextmanager
from typing import Dict, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, scoped_session

from supplier_inventory.config import config
from supplier_inventory.exceptions import DatabaseError
from supplier_inventory.logging_setup import get_logger

logger = get_logger('db')

class Database:
    """Local store for the supplier catalog, the variant snapshot and metafields.

    One engine and one scoped session factory per process. The connection
    URL comes from the DATABASE section unless one is passed explicitly.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._engine = None
        self._session = None
        self._url = None
        self._initialized = True

    @staticmethod
    def _engine_options(url: str) -> Dict:
        options = {'echo': config.get_boolean('DATABASE', 'echo', False)}

        # SQLite pools reject sizing arguments
        if not url.startswith('sqlite'):
            options.update(
                pool_size=config.get_int('DATABASE', 'pool_size', 5),
                max_overflow=config.get_int('DATABASE', 'max_overflow', 10),
                pool_timeout=config.get_int('DATABASE', 'pool_timeout', 30),
                pool_recycle=config.get_int('DATABASE', 'pool_recycle', 1800),
                pool_pre_ping=True
            )
        return options

    def initialize(self, url: Optional[str] = None, create_tables: bool = False):
        """Connect to the database.

        Args:
            url: SQLAlchemy URL; defaults to the configured one
            create_tables: Create missing tables right away

        Raises:
            DatabaseError if the engine cannot be created
        """
        url = url or config.get_db_url()
        if self._engine is not None:
            self.dispose()

        try:
            self._engine = create_engine(url, **self._engine_options(url))
        except (SQLAlchemyError, ImportError) as e:
            raise DatabaseError(f"Cannot connect to database: {str(e)}", details={'url': url})

        self._session = scoped_session(sessionmaker(bind=self._engine))
        self._url = url
        logger.info(f"Database initialized: {self._engine.url.render_as_string(hide_password=True)}")

        if create_tables:
            self.create_all_tables()

    def dispose(self):
        """Close every pooled connection and forget the engine."""
        if self._session is not None:
            self._session.remove()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session = None
        self._url = None

    def create_all_tables(self):
        """Create missing tables."""
        from supplier_inventory.models import Base

        existing = set(inspect(self.engine).get_table_names())
        Base.metadata.create_all(self.engine)
        created = sorted(set(Base.metadata.tables) - existing)
        if created:
            logger.info(f"Created tables: {', '.join(created)}")

    def drop_all_tables(self):
        """Drop every table of the models."""
        from supplier_inventory.models import Base

        Base.metadata.drop_all(self.engine)
        logger.warning("Dropped all tables")

    @property
    def engine(self):
        if self._engine is None:
            self.initialize()
        return self._engine

    @property
    def session(self):
        """Scoped session factory bound to the engine."""
        if self._session is None:
            self.initialize()
        return self._session

    @contextmanager
    def session_scope(self):
        """Commit on success, roll back on any error.

        Database errors are logged and re-raised as DatabaseError; domain
        errors propagate unchanged.
        """
        session = self.session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error, transaction rolled back: {str(e)}")
            raise DatabaseError(f"Database error: {str(e)}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

db = Database()

@contextmanager
def session_scope():
    """Transactional session scope on the global database."""
    with db.session_scope() as session:
        yield session
