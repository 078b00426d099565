import argparse
import csv
import io
import json
import math
import sys
from pathlib import Path

from tabulate import tabulate

from supplier_inventory.config import config
from supplier_inventory.db import db, session_scope
from supplier_inventory.exceptions import SupplierInventoryError
from supplier_inventory.logging_setup import logger, get_logger, log_exception
from supplier_inventory.models import RiskTier, UnknownSupplierPolicy
from supplier_inventory.core.aggregate import SORT_FIELDS, summarize_totals

log = get_logger('cli')

def read_records(path: str):
    """Read a CSV or JSON file of records into a list of dictionaries."""
    file_path = Path(path)
    text = file_path.read_text(encoding='utf-8-sig')

    if file_path.suffix.lower() == '.json':
        data = json.loads(text)
        if isinstance(data, dict):
            # Accept {"suppliers": [...]} / {"variants": [...]} wrappers
            data = next((value for value in data.values() if isinstance(value, list)), [])
        return data

    return [
        {key.strip(): (value or '').strip() for key, value in row.items() if key}
        for row in csv.DictReader(io.StringIO(text))
    ]

def format_days(days):
    if days is None or (isinstance(days, float) and math.isinf(days)):
        return 'never'
    return int(days)

def init_db(args):
    """Create (and optionally drop) the database tables."""
    db.initialize(args.url)
    if args.drop:
        db.drop_all_tables()
    db.create_all_tables()
    print(f"Database ready at {args.url or config.get_db_url()}")

def load_variants(args):
    """Load a variant snapshot exported from the platform."""
    from supplier_inventory.services.variant_service import VariantService

    records = read_records(args.file)
    with session_scope() as session:
        results = VariantService(session).sync_snapshot(records)

    print(f"Variants created: {results['created']}, updated: {results['updated']}, invalid: {results['invalid']}")

def import_suppliers(args):
    """Import supplier catalog records."""
    from supplier_inventory.services.supplier_service import SupplierService

    records = read_records(args.file)
    with session_scope() as session:
        results = SupplierService(session).bulk_import_suppliers(records)

    if results['failed']:
        print(tabulate(
            [[entry['supplier'], entry['error']] for entry in results['failed']],
            headers=['Supplier', 'Error']
        ))
    print(f"\nSuppliers imported: {len(results['success'])} of {results['total']}, failed: {len(results['failed'])}")

def import_assignments(args):
    """Import variant-supplier assignments."""
    from supplier_inventory.services.import_service import ImportReconciler

    input_format = args.format or ('json' if args.file.lower().endswith('.json') else 'csv')
    content = Path(args.file).read_bytes()

    with session_scope() as session:
        result = ImportReconciler(session).run(content, input_format=input_format, dry_run=args.dry_run)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    if result.skipped:
        print("\nSkipped:")
        print(tabulate([[entry['sku'], entry['reason']] for entry in result.skipped], headers=['SKU', 'Reason']))
    if result.failed:
        print("\nFailed:")
        print(tabulate([[entry['sku'], entry['error']] for entry in result.failed], headers=['SKU', 'Error']))

    prefix = "Dry run" if args.dry_run else "Import complete"
    print(f"\n{prefix}: {result.summary()}")

def risk_report(args):
    """Print the inventory risk report."""
    from supplier_inventory.services.reporting_service import ReportingService

    tiers = [RiskTier.from_string(value) for value in args.risk] if args.risk else None

    with session_scope() as session:
        service = ReportingService(session)
        rows = service.risk_report(risk_tiers=tiers, sort_by=args.sort, descending=args.descending)
        if args.export:
            service.export_risk_report_csv(rows, args.export)

    table_data = [
        [
            row['risk_tier'].replace('_', ' ').upper(),
            row['sku'],
            row['product_title'],
            row['on_hand'],
            row['daily_demand'],
            row['threshold'],
            row['supplier_name'],
            row['lead_time_days'],
            format_days(row['days_until_stockout']),
            row['projected_stockout_date'] or '',
            row['reorder_date'] or '',
            round(row['reorder_point'], 2),
            round(row['suggested_order_quantity'], 2)
        ]
        for row in rows
    ]
    print(tabulate(table_data, headers=[
        'Risk', 'SKU', 'Product', 'On Hand', 'Daily Demand', 'Threshold', 'Supplier',
        'Lead Time', 'Days Left', 'Stockout Date', 'Order By', 'Reorder Point', 'Suggested Order'
    ]))
    print(f"\nTotal variants: {len(rows)}")

def supplier_stats(args):
    """Print per-supplier statistics."""
    from supplier_inventory.services.reporting_service import ReportingService

    policy = UnknownSupplierPolicy.from_string(args.unknown) if args.unknown else None

    with session_scope() as session:
        stats = ReportingService(session).supplier_stats(
            sort_by=args.sort,
            descending=not args.ascending,
            unknown_supplier_policy=policy
        )

    table_data = [
        [
            entry.name, entry.total_variants, entry.primary_variants, entry.out_of_stock,
            entry.critical, entry.at_risk, entry.needs_reorder, f"${entry.total_value:,.2f}"
        ]
        for entry in stats
    ]
    print(tabulate(table_data, headers=[
        'Supplier', 'Variants', 'Primary', 'Out of Stock', 'Critical', 'At Risk',
        'Needs Reorder', 'Inventory Value'
    ]))

    totals = summarize_totals(stats)
    print(
        f"\nTotal variants: {totals['total_variants']}, at risk: {totals['at_risk']}, "
        f"needs reorder: {totals['needs_reorder']}, value: ${totals['total_value']:,.2f}"
    )

def purchase_orders(args):
    """Print reorder suggestions."""
    from supplier_inventory.services.reporting_service import ReportingService

    with session_scope() as session:
        lines = ReportingService(session).purchase_order_suggestions(supplier_id=args.supplier)

    table_data = [
        [
            line['supplier_name'], line['sku'], line['product_title'], line['on_hand'],
            round(line['reorder_point'], 2), format_days(line['days_until_stockout']),
            line['recommended_quantity'], f"${line['estimated_cost']:,.2f}",
            'Y' if line['is_primary'] else ''
        ]
        for line in lines
    ]
    print(tabulate(table_data, headers=[
        'Supplier', 'SKU', 'Product', 'On Hand', 'Reorder Point', 'Days Left',
        'Order Qty', 'Est. Cost', 'Primary'
    ]))
    total_cost = sum(line['estimated_cost'] for line in lines)
    print(f"\nLines: {len(lines)}, estimated cost: ${total_cost:,.2f}")

def build_parser():
    parser = argparse.ArgumentParser(description='Supplier Inventory Risk')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    init_parser = subparsers.add_parser('init-db', help='Create the database tables')
    init_parser.add_argument('--drop', '-d', action='store_true', help='Drop existing tables first')
    init_parser.add_argument('--url', help='Database URL (default: from configuration)')

    variants_parser = subparsers.add_parser('load-variants', help='Load a variant snapshot (CSV or JSON)')
    variants_parser.add_argument('file', help='Variant snapshot file')

    suppliers_parser = subparsers.add_parser('import-suppliers', help='Import supplier records (CSV or JSON)')
    suppliers_parser.add_argument('file', help='Supplier file')

    assignments_parser = subparsers.add_parser('import-assignments', help='Import variant-supplier assignments')
    assignments_parser.add_argument('file', help='Assignment file')
    assignments_parser.add_argument('--format', choices=['csv', 'json'], help='Input format (default: by extension)')
    assignments_parser.add_argument('--dry-run', action='store_true', help='Validate without writing')
    assignments_parser.add_argument('--json', action='store_true', help='Output the result as JSON')

    risk_parser = subparsers.add_parser('risk-report', help='Show inventory risk per variant')
    risk_parser.add_argument('--risk', action='append', choices=[tier.value for tier in RiskTier],
                             help='Only show this risk tier (repeatable)')
    risk_parser.add_argument('--sort', default='days_until_stockout', help='Sort field')
    risk_parser.add_argument('--descending', action='store_true', help='Sort descending')
    risk_parser.add_argument('--export', help='Also export the report to this CSV file')

    stats_parser = subparsers.add_parser('supplier-stats', help='Show statistics per supplier')
    stats_parser.add_argument('--sort', default='total_variants', choices=SORT_FIELDS, help='Sort field')
    stats_parser.add_argument('--ascending', action='store_true', help='Sort ascending')
    stats_parser.add_argument('--unknown', choices=[policy.value for policy in UnknownSupplierPolicy],
                              help='How to treat suppliers missing from the catalog')

    po_parser = subparsers.add_parser('purchase-orders', help='Show reorder suggestions')
    po_parser.add_argument('--supplier', help='Only this supplier ID')

    return parser

COMMANDS = {
    'init-db': init_db,
    'load-variants': load_variants,
    'import-suppliers': import_suppliers,
    'import-assignments': import_assignments,
    'risk-report': risk_report,
    'supplier-stats': supplier_stats,
    'purchase-orders': purchase_orders
}

def main(argv=None):
    """Main entry point for the command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    logger.app_logger.info(f"Running command: {args.command}")
    try:
        handler(args)
    except SupplierInventoryError as e:
        log.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        log_exception('cli', e, f"{args.command} failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0

if __name__ == '__main__':
    sys.exit(main())
