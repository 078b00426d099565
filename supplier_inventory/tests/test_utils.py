import math
import unittest
from datetime import date, datetime
from unittest.mock import MagicMock

from supplier_inventory.exceptions import ExternalWriteError, RateLimitError
from supplier_inventory.utils.parsing import (
    clean_text, parse_bool, parse_date, parse_int, parse_non_negative_int, parse_non_negative_number
)
from supplier_inventory.utils.retry import RetryPolicy


class TestParsing(unittest.TestCase):
    """Test cases for value coercion helpers."""

    def test_non_negative_number(self):
        self.assertEqual(parse_non_negative_number('2.5'), 2.5)
        self.assertEqual(parse_non_negative_number(' $1,200 '), 1200.0)
        self.assertEqual(parse_non_negative_number(-4), 0.0)
        self.assertEqual(parse_non_negative_number('-inf'), 0.0)
        self.assertTrue(math.isinf(parse_non_negative_number('inf')))

    def test_non_negative_number_defaults(self):
        for raw in (None, '', '  ', 'abc', float('nan'), True, [], {}):
            self.assertEqual(parse_non_negative_number(raw), 0.0, raw)
        self.assertEqual(parse_non_negative_number('abc', default=3.0), 3.0)

    def test_non_negative_int(self):
        self.assertEqual(parse_non_negative_int('14.9'), 14)
        self.assertEqual(parse_non_negative_int('-2'), 0)
        self.assertEqual(parse_non_negative_int('inf'), 0)
        self.assertEqual(parse_non_negative_int(None, default=5), 5)

    def test_int_keeps_sign(self):
        self.assertEqual(parse_int('-3'), -3)
        self.assertEqual(parse_int(' 12 '), 12)
        self.assertEqual(parse_int('7.8'), 7)
        self.assertEqual(parse_int('n/a'), 0)
        self.assertEqual(parse_int(None), 0)

    def test_bool(self):
        for raw in ('Y', 'yes', '1', 'TRUE', True, 1):
            self.assertTrue(parse_bool(raw), raw)
        for raw in ('N', 'no', '', None, 'primary', False, 0):
            self.assertFalse(parse_bool(raw), raw)

    def test_date(self):
        self.assertEqual(parse_date('2024-01-15'), date(2024, 1, 15))
        self.assertEqual(parse_date('01/15/2024'), date(2024, 1, 15))
        self.assertEqual(parse_date('2024-01-15T08:30:00Z'), date(2024, 1, 15))
        self.assertEqual(parse_date(datetime(2024, 1, 15, 8, 30)), date(2024, 1, 15))
        self.assertIsNone(parse_date('last week'))
        self.assertIsNone(parse_date(''))

    def test_clean_text(self):
        self.assertEqual(clean_text(None), '')
        self.assertEqual(clean_text('  SUP-1 '), 'SUP-1')
        self.assertEqual(clean_text(42), '42')


class TestRetryPolicy(unittest.TestCase):
    """Test cases for the write retry policy."""

    def setUp(self):
        """Set up test fixtures."""
        self.sleep = MagicMock()

    def test_success_without_retry(self):
        func = MagicMock(return_value='ok')
        policy = RetryPolicy(sleep=self.sleep)

        self.assertEqual(policy.call(func, 1, key='value'), 'ok')
        func.assert_called_once_with(1, key='value')
        self.sleep.assert_not_called()

    def test_exponential_backoff(self):
        func = MagicMock(side_effect=[RateLimitError(), RateLimitError(), RateLimitError(), 'ok'])
        policy = RetryPolicy(max_retries=3, base_delay=0.5, max_delay=8.0, sleep=self.sleep)

        self.assertEqual(policy.call(func), 'ok')
        self.assertEqual([call.args[0] for call in self.sleep.call_args_list], [0.5, 1.0, 2.0])

    def test_delay_is_capped(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=3.0)
        self.assertEqual(policy.delay_for(1), 1.0)
        self.assertEqual(policy.delay_for(5), 3.0)
        self.assertEqual(policy.delay_for(1, RateLimitError(retry_after=10)), 3.0)
        self.assertEqual(policy.delay_for(1, RateLimitError(retry_after='soon')), 1.0)

    def test_gives_up_after_max_retries(self):
        func = MagicMock(side_effect=RateLimitError())
        policy = RetryPolicy(max_retries=2, sleep=self.sleep)

        with self.assertRaises(RateLimitError):
            policy.call(func)
        self.assertEqual(func.call_count, 3)
        self.assertEqual(self.sleep.call_count, 2)

    def test_other_errors_are_not_retried(self):
        func = MagicMock(side_effect=ExternalWriteError("rejected"))
        policy = RetryPolicy(sleep=self.sleep)

        with self.assertRaises(ExternalWriteError):
            policy.call(func)
        self.assertEqual(func.call_count, 1)

    def test_from_config(self):
        policy = RetryPolicy.from_config(
            {'max_retries': 5, 'backoff_base_seconds': 0.25, 'backoff_max_seconds': 4.0},
            sleep=self.sleep
        )

        self.assertEqual(policy.max_retries, 5)
        self.assertEqual(policy.base_delay, 0.25)
        self.assertEqual(policy.max_delay, 4.0)
        self.assertIs(policy.sleep, self.sleep)


if __name__ == '__main__':
    unittest.main()
