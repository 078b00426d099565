import itertools
import json
import unittest
from datetime import date

from supplier_inventory.core.assignments import (
    AssignmentList, LegacySingle, SupplierAssignment, add_or_update, decode_blob,
    dump_assignments, load_assignments, normalize, primary_assignment, remove
)
from supplier_inventory.exceptions import AssignmentError


def make(supplier_id, is_primary=False, **fields):
    return SupplierAssignment(supplier_id, is_primary=is_primary, **fields)


def primaries(assignments):
    return [assignment.supplier_id for assignment in assignments if assignment.is_primary]


class TestNormalize(unittest.TestCase):
    """Test cases for the primary-supplier invariant."""

    def test_empty_list(self):
        self.assertEqual(normalize([]), [])

    def test_no_primary_promotes_first(self):
        result = normalize([make('SUP-1'), make('SUP-2')])
        self.assertEqual(primaries(result), ['SUP-1'])

    def test_several_primaries_keep_last(self):
        result = normalize([make('SUP-1', True), make('SUP-2', True), make('SUP-3')])
        self.assertEqual(primaries(result), ['SUP-2'])

    def test_single_assignment_is_primary(self):
        self.assertEqual(primaries(normalize([make('SUP-1')])), ['SUP-1'])

    def test_every_flag_combination(self):
        """Any non-empty list ends with exactly one primary at the expected position."""
        for size in range(1, 5):
            for flags in itertools.product([False, True], repeat=size):
                assignments = [make(f"SUP-{i}", flag) for i, flag in enumerate(flags)]
                result = normalize(assignments)

                marked = [i for i, flag in enumerate(flags) if flag]
                expected = f"SUP-{marked[-1] if marked else 0}"
                self.assertEqual(primaries(result), [expected], flags)
                self.assertEqual([a.supplier_id for a in result], [a.supplier_id for a in assignments])

    def test_does_not_mutate_input(self):
        assignments = [make('SUP-1', True), make('SUP-2', True)]
        normalize(assignments)
        self.assertTrue(assignments[0].is_primary)
        self.assertTrue(assignments[1].is_primary)

    def test_idempotent(self):
        once = normalize([make('SUP-1'), make('SUP-2', True), make('SUP-3', True)])
        self.assertEqual(normalize(once), once)


class TestListOperations(unittest.TestCase):
    """Test cases for adding, replacing and removing assignments."""

    def test_add_to_empty_list_becomes_primary(self):
        result = add_or_update([], make('SUP-1'))
        self.assertEqual(primaries(result), ['SUP-1'])

    def test_add_primary_demotes_others(self):
        result = add_or_update([make('SUP-1', True), make('SUP-2')], make('SUP-3', True))
        self.assertEqual([a.supplier_id for a in result], ['SUP-1', 'SUP-2', 'SUP-3'])
        self.assertEqual(primaries(result), ['SUP-3'])

    def test_add_secondary_keeps_primary(self):
        result = add_or_update([make('SUP-1'), make('SUP-2', True)], make('SUP-3'))
        self.assertEqual(primaries(result), ['SUP-2'])

    def test_replace_at_index(self):
        existing = [make('SUP-1', True), make('SUP-2', lead_time_days=5)]
        result = add_or_update(existing, make('SUP-2', lead_time_days=21), index=1)

        self.assertEqual(len(result), 2)
        self.assertEqual(result[1].lead_time_days, 21)
        self.assertEqual(primaries(result), ['SUP-1'])

    def test_replacing_primary_with_secondary_promotes_first(self):
        result = add_or_update([make('SUP-1'), make('SUP-2', True)], make('SUP-3'), index=1)
        self.assertEqual(primaries(result), ['SUP-1'])

    def test_index_out_of_range(self):
        with self.assertRaises(AssignmentError):
            add_or_update([make('SUP-1', True)], make('SUP-2'), index=3)
        with self.assertRaises(AssignmentError):
            add_or_update([], make('SUP-2'), index=0)

    def test_remove_primary_promotes_first(self):
        result = remove([make('SUP-1'), make('SUP-2', True), make('SUP-3')], 1)
        self.assertEqual([a.supplier_id for a in result], ['SUP-1', 'SUP-3'])
        self.assertEqual(primaries(result), ['SUP-1'])

    def test_remove_secondary_keeps_primary(self):
        result = remove([make('SUP-1'), make('SUP-2', True), make('SUP-3')], 2)
        self.assertEqual(primaries(result), ['SUP-2'])

    def test_remove_last_assignment(self):
        self.assertEqual(remove([make('SUP-1', True)], 0), [])

    def test_remove_out_of_range(self):
        with self.assertRaises(AssignmentError):
            remove([make('SUP-1', True)], 1)

    def test_primary_assignment(self):
        self.assertIsNone(primary_assignment([]))
        self.assertEqual(primary_assignment([make('SUP-1'), make('SUP-2', True)]).supplier_id, 'SUP-2')
        self.assertEqual(primary_assignment([make('SUP-1'), make('SUP-2')]).supplier_id, 'SUP-1')


class TestPersistedBlobs(unittest.TestCase):
    """Test cases for reading and writing persisted supplier data."""

    def test_decode_shapes(self):
        self.assertIsInstance(decode_blob('{"supplier_id": "SUP-1"}'), LegacySingle)
        self.assertIsInstance(decode_blob('[{"supplier_id": "SUP-1"}]'), AssignmentList)
        self.assertIsInstance(decode_blob(b'[]'), AssignmentList)
        self.assertIsNone(decode_blob(None))
        self.assertIsNone(decode_blob('   '))
        self.assertIsNone(decode_blob('42'))

    def test_legacy_single_object_upconverts(self):
        """An old single-object blob reads as a one-element list with a primary."""
        raw = json.dumps({'supplier_id': 'SUP-1', 'lead_time': '14', 'threshold': 10, 'is_primary': False})
        result = load_assignments(raw)

        self.assertEqual(len(result), 1)
        self.assertTrue(result[0].is_primary)
        self.assertEqual(result[0].lead_time_days, 14)
        self.assertEqual(result[0].reorder_threshold, 10)

    def test_list_blob_is_normalized(self):
        raw = json.dumps([
            {'supplier_id': 'SUP-1', 'is_primary': True},
            {'supplier_id': 'SUP-2', 'is_primary': True},
        ])
        self.assertEqual(primaries(load_assignments(raw)), ['SUP-2'])

    def test_malformed_blob_reads_as_empty(self):
        self.assertEqual(load_assignments('not json'), [])
        self.assertEqual(load_assignments(None), [])
        self.assertEqual(load_assignments('"text"'), [])

    def test_non_object_entries_are_ignored(self):
        result = load_assignments('[{"supplier_id": "SUP-1"}, 7, "x"]')
        self.assertEqual([a.supplier_id for a in result], ['SUP-1'])

    def test_from_dict_coerces_values(self):
        assignment = SupplierAssignment.from_dict({
            'supplier_id': ' SUP-1 ',
            'manufacturer_part_number': 'MPN-9',
            'daily_demand': 'abc',
            'threshold': '-5',
            'last_order_cpu': '$1,250.50',
            'last_order_date': '2024-03-05T10:00:00Z',
            'is_primary': 'Y'
        })

        self.assertEqual(assignment.supplier_id, 'SUP-1')
        self.assertEqual(assignment.manufacturer_part_number, 'MPN-9')
        self.assertEqual(assignment.daily_demand, 0)
        self.assertEqual(assignment.reorder_threshold, 0)
        self.assertEqual(assignment.last_order_unit_cost, 1250.5)
        self.assertEqual(assignment.last_order_date, date(2024, 3, 5))
        self.assertTrue(assignment.is_primary)

    def test_dump_uses_persisted_keys(self):
        assignment = make('SUP-1', True, manufacturer_part_number='MPN-1', lead_time_days=14,
                          last_order_date=date(2024, 1, 15), last_order_unit_cost=2.5)
        data = json.loads(dump_assignments([assignment]))

        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['supplier_id'], 'SUP-1')
        self.assertEqual(data[0]['mpn'], 'MPN-1')
        self.assertEqual(data[0]['lead_time'], 14)
        self.assertEqual(data[0]['last_order_cpu'], 2.5)
        self.assertEqual(data[0]['last_order_date'], '2024-01-15')
        self.assertTrue(data[0]['is_primary'])

    def test_dump_then_load_is_stable(self):
        assignments = normalize([make('SUP-1', lead_time_days=3), make('SUP-2', True, daily_demand=1.5)])
        self.assertEqual(load_assignments(dump_assignments(assignments)), assignments)


if __name__ == '__main__':
    unittest.main()
