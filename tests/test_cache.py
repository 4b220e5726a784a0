"""
Tests for the in-process TTL cache used by the dashboard.
"""
import unittest

from services.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestTTLCache(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = TTLCache(300, clock=self.clock)

    def test_get_set(self):
        self.cache.set("usr-1", {"loanLimit": "8000.00"})
        self.assertEqual(self.cache.get("usr-1"), {"loanLimit": "8000.00"})
        self.assertIn("usr-1", self.cache)
        self.assertIsNone(self.cache.get("usr-2"))
        self.assertEqual(self.cache.get("usr-2", "missing"), "missing")

    def test_entry_expires(self):
        self.cache.set("usr-1", 1)
        self.clock.now += 299
        self.assertEqual(self.cache.get("usr-1"), 1)
        self.clock.now += 1
        self.assertIsNone(self.cache.get("usr-1"))
        self.assertEqual(len(self.cache), 0)

    def test_invalidate_and_clear(self):
        self.cache.set("usr-1", 1)
        self.cache.set("usr-2", 2)
        self.assertTrue(self.cache.invalidate("usr-1"))
        self.assertFalse(self.cache.invalidate("usr-1"))
        self.assertEqual(len(self.cache), 1)
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)

    def test_write_drops_expired_entries_of_other_keys(self):
        self.cache.set("usr-1", 1)
        self.cache.set("usr-2", 2)
        self.clock.now += 300
        self.cache.set("usr-3", 3)
        self.assertEqual(list(self.cache._entries), ["usr-3"])
        self.assertEqual(self.cache.purge_expired(), 0)

    def test_rewrite_moves_key_to_back(self):
        self.cache.set("usr-1", 1)
        self.clock.now += 200
        self.cache.set("usr-2", 2)
        self.clock.now += 50
        self.cache.set("usr-1", 10)
        self.clock.now += 270
        self.assertEqual(self.cache.purge_expired(), 1)
        self.assertEqual(self.cache.get("usr-1"), 10)
        self.assertIsNone(self.cache.get("usr-2"))

    def test_max_entries_evicts_closest_to_expiry(self):
        cache = TTLCache(300, clock=self.clock, max_entries=2)
        cache.set("usr-1", 1)
        cache.set("usr-2", 2)
        cache.set("usr-3", 3)
        self.assertIsNone(cache.get("usr-1"))
        self.assertEqual(cache.get("usr-3"), 3)
        self.assertEqual(len(cache._entries), 2)

    def test_ttl_must_be_positive(self):
        with self.assertRaises(ValueError):
            TTLCache(0)


if __name__ == "__main__":
    unittest.main()
