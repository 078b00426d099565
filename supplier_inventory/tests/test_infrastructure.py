import unittest

from sqlalchemy import inspect

from supplier_inventory.config import config
from supplier_inventory.db import db, session_scope
from supplier_inventory.exceptions import (
    DatabaseError, ExternalWriteError, RateLimitError, SupplierInventoryError, ValidationError
)
from supplier_inventory.logging_setup import RunLog, get_logger, logger
from supplier_inventory.models import Supplier


class TestDatabase(unittest.TestCase):
    """Test cases for the global database and its session scope."""

    def setUp(self):
        """Set up test fixtures."""
        db.initialize('sqlite://', create_tables=True)
        self.addCleanup(db.dispose)

    def test_tables_created(self):
        tables = set(inspect(db.engine).get_table_names())
        self.assertTrue({'suppliers', 'variants', 'metafields'} <= tables)

    def test_session_scope_commits(self):
        with session_scope() as session:
            session.add(Supplier(supplier_id='SUP-1', supplier_name='Acme'))

        with session_scope() as session:
            self.assertEqual(session.query(Supplier).count(), 1)

    def test_session_scope_rolls_back_on_error(self):
        with self.assertRaises(ValidationError):
            with session_scope() as session:
                session.add(Supplier(supplier_id='SUP-1', supplier_name='Acme'))
                session.flush()
                raise ValidationError("bad record")

        with session_scope() as session:
            self.assertEqual(session.query(Supplier).count(), 0)

    def test_integrity_error_becomes_database_error(self):
        with session_scope() as session:
            session.add(Supplier(supplier_id='SUP-1', supplier_name='Acme'))

        with self.assertRaises(DatabaseError):
            with session_scope() as session:
                session.add(Supplier(supplier_id='SUP-1', supplier_name='Duplicate'))


class TestConfig(unittest.TestCase):
    """Test cases for configuration lookups."""

    def test_missing_values_use_default(self):
        self.assertEqual(config.get('NO_SECTION', 'key', 'fallback'), 'fallback')
        self.assertEqual(config.get_int('IMPORT', 'no_such_option', 7), 7)
        self.assertIsNone(config.get_float('NO_SECTION', 'key'))

    def test_import_config(self):
        import_config = config.import_config
        self.assertTrue(import_config['namespace'])
        self.assertTrue(import_config['key'])
        self.assertGreaterEqual(import_config['write_delay_ms'], 0)
        self.assertGreaterEqual(import_config['max_retries'], 0)

    def test_db_url(self):
        self.assertIn('://', config.get_db_url())


class TestLogging(unittest.TestCase):
    """Test cases for the logging manager."""

    def test_named_loggers_are_cached(self):
        self.assertIs(get_logger('tests'), get_logger('tests'))
        self.assertFalse(get_logger('tests').propagate)

    def test_run_log_records_outcome(self):
        with logger.run_log('unit_test', rows=3) as run:
            run.finish(success=False, summary='1 failed')

        self.assertIsInstance(run, RunLog)
        self.assertEqual(run.context, {'rows': 3})
        self.assertFalse(run.success)
        self.assertEqual(run.summary, '1 failed')

    def test_run_log_reraises(self):
        with self.assertRaises(RuntimeError):
            with logger.run_log('unit_test'):
                raise RuntimeError("boom")


class TestExceptions(unittest.TestCase):
    """Test cases for the exception hierarchy."""

    def test_default_message_and_dict(self):
        error = ValidationError(details={'field': 'supplier_id'})
        self.assertEqual(error.message, 'Validation error')
        self.assertEqual(error.to_dict(), {
            'error': 'ValidationError',
            'message': 'Validation error',
            'details': {'field': 'supplier_id'}
        })

    def test_rate_limit_error(self):
        error = RateLimitError(retry_after=2)
        self.assertIsInstance(error, ExternalWriteError)
        self.assertIsInstance(error, SupplierInventoryError)
        self.assertEqual(error.code, 429)
        self.assertEqual(error.retry_after, 2)
        self.assertEqual(str(error), '[429] Rate limit exceeded')


if __name__ == '__main__':
    unittest.main()
