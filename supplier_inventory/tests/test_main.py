import io
import json
import os
import tempfile
from contextlib import contextmanager
from unittest.mock import patch

from sqlalchemy import inspect

from supplier_inventory import main as cli
from supplier_inventory.core.assignments import SupplierAssignment
from supplier_inventory.db import db
from supplier_inventory.services.metafield_store import AssignmentRepository, SqlMetafieldStore
from supplier_inventory.tests.fixtures import DatabaseTestCase


class TestCommandLine(DatabaseTestCase):
    """Test cases for the command line interface."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.add_supplier('SUP-1', 'Acme')
        self.critical = self.add_variant('SKU-A', on_hand_quantity=5)
        self.add_variant('SKU-B', on_hand_quantity=500)

        AssignmentRepository(SqlMetafieldStore(self.session)).write(self.critical.variant_id, [
            SupplierAssignment('SUP-1', lead_time_days=14, reorder_threshold=10, daily_demand=2,
                               last_order_unit_cost=3.0, is_primary=True)
        ])

        @contextmanager
        def session_scope():
            yield self.session

        patcher = patch.object(cli, 'session_scope', session_scope)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)

    def write_file(self, name, content):
        path = os.path.join(self.tmp_dir.name, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def run_cli(self, *argv):
        with patch('sys.stdout', new_callable=io.StringIO) as stdout:
            code = cli.main(list(argv))
        return code, stdout.getvalue()

    def test_no_command_prints_help(self):
        code, output = self.run_cli()
        self.assertEqual(code, 1)
        self.assertIn('usage', output.lower())

    def test_risk_report(self):
        code, output = self.run_cli('risk-report', '--risk', 'critical')

        self.assertEqual(code, 0)
        self.assertIn('SKU-A', output)
        self.assertNotIn('SKU-B', output)
        self.assertIn('CRITICAL', output)

    def test_risk_report_export(self):
        path = os.path.join(self.tmp_dir.name, 'risk.csv')
        code, _ = self.run_cli('risk-report', '--export', path)

        self.assertEqual(code, 0)
        with open(path, newline='') as f:
            self.assertTrue(f.readline().startswith('risk_tier,sku'))

    def test_import_assignments_json_output(self):
        path = self.write_file('assignments.csv', "SKU,SupplierID,IsPrimary\nSKU-B,SUP-1,Y\nSKU-Z,SUP-1,Y\n")
        code, output = self.run_cli('import-assignments', path, '--json')

        self.assertEqual(code, 0)
        result = json.loads(output)
        self.assertEqual(result['success'][0]['sku'], 'SKU-B')
        self.assertEqual(result['skipped'][0]['sku'], 'SKU-Z')

    def test_import_assignments_malformed(self):
        path = self.write_file('assignments.csv', "Foo,Bar\n1,2\n")
        with patch('sys.stderr', new_callable=io.StringIO):
            code, _ = self.run_cli('import-assignments', path)
        self.assertEqual(code, 1)

    def test_import_suppliers(self):
        path = self.write_file('suppliers.json', json.dumps({'suppliers': [
            {'supplier_id': 'SUP-2', 'supplier_name': 'Globex'},
            {'supplier_id': 'SUP-3'},
        ]}))
        code, output = self.run_cli('import-suppliers', path)

        self.assertEqual(code, 0)
        self.assertIn('Suppliers imported: 1 of 2', output)

    def test_load_variants(self):
        path = self.write_file('variants.csv', "variant_id,sku,product_title,on_hand_quantity\nV9,SKU-C,Widget,4\n")
        code, output = self.run_cli('load-variants', path)

        self.assertEqual(code, 0)
        self.assertIn('Variants created: 1', output)

    def test_supplier_stats(self):
        code, output = self.run_cli('supplier-stats', '--sort', 'at_risk')

        self.assertEqual(code, 0)
        self.assertIn('Acme', output)
        self.assertIn('at risk: 1', output)

    def test_purchase_orders(self):
        code, output = self.run_cli('purchase-orders', '--supplier', 'SUP-1')

        self.assertEqual(code, 0)
        self.assertIn('SKU-A', output)
        self.assertIn('Lines: 1', output)

    def test_missing_file(self):
        with patch('sys.stderr', new_callable=io.StringIO):
            code, _ = self.run_cli('import-suppliers', os.path.join(self.tmp_dir.name, 'missing.csv'))
        self.assertEqual(code, 1)

    def test_format_days(self):
        self.assertEqual(cli.format_days(None), 'never')
        self.assertEqual(cli.format_days(float('inf')), 'never')
        self.assertEqual(cli.format_days(3.7), 3)

    def test_init_db(self):
        path = os.path.join(self.tmp_dir.name, 'cli.db')
        self.addCleanup(db.dispose)

        code, output = self.run_cli('init-db', '--url', f"sqlite:///{path}")

        self.assertEqual(code, 0)
        self.assertIn('Database ready', output)
        self.assertIn('variants', inspect(db.engine).get_table_names())
