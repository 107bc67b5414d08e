import random
import unittest

from routing_stats.resources.asn_index import AsnRangeIndex
from routing_stats.resources.ip import AsnRange, Prefix
from routing_stats.resources.prefix_table import PrefixTable
from routing_stats.utils.error_handling import IndexBuildFailure


def _table(entries, sort_key=None):
    table = PrefixTable(sort_key=sort_key)
    for text, value in entries:
        table.insert(Prefix.from_str(text), value)
    return table.freeze()


P = Prefix.from_str


class TestPrefixTable(unittest.TestCase):

    def setUp(self):
        self.table = _table([
            ("10.0.0.0/8", "a"),
            ("10.1.0.0/16", "b"),
            ("10.1.2.0/24", "c"),
            ("10.2.0.0/16", "d"),
            ("2001:db8::/32", "e"),
            ("0.0.0.0/0", "root"),
        ])

    def test_covering_most_specific_first(self):
        self.assertEqual(list(self.table.covering(P("10.1.2.128/25"))), ["c", "b", "a", "root"])
        self.assertEqual(list(self.table.covering(P("10.1.2.0/24"))), ["c", "b", "a", "root"])
        self.assertEqual(list(self.table.covering(P("11.0.0.0/8"))), ["root"])

    def test_covering_stays_within_family(self):
        self.assertEqual(list(self.table.covering(P("2001:db8:1::/48"))), ["e"])
        self.assertEqual(list(self.table.covering(P("2001:db9::/32"))), [])

    def test_most_specific(self):
        self.assertEqual(self.table.most_specific(P("10.2.3.0/24")), "d")
        self.assertIsNone(self.table.most_specific(P("3000::/16")))

    def test_covered_by(self):
        self.assertEqual(list(self.table.covered_by(P("10.0.0.0/8"))), ["a", "b", "d", "c"])
        self.assertEqual(list(self.table.covered_by(P("10.1.0.0/16"))), ["b", "c"])
        self.assertEqual(list(self.table.covered_by(P("10.0.0.0/8"), max_length=16)), ["a", "b", "d"])
        self.assertEqual(list(self.table.covered_by(P("12.0.0.0/8"))), [])

    def test_intersecting(self):
        self.assertEqual(sorted(self.table.intersecting(P("10.1.0.0/16"))), ["a", "b", "c", "root"])

    def test_items_ordered_by_prefix(self):
        self.assertEqual([str(p) for p, _ in self.table.items()],
                         ["0.0.0.0/0", "10.0.0.0/8", "10.1.0.0/16", "10.1.2.0/24", "10.2.0.0/16",
                          "2001:db8::/32"])
        self.assertEqual(len(self.table), 6)

    def test_values_independent_of_insertion_order(self):
        entries = [("10.0.0.0/8", 3), ("10.0.0.0/8", 1), ("10.0.0.0/16", 2), ("10.0.0.0/8", 2)]
        expected = list(_table(entries, sort_key=lambda v: v).covering(P("10.0.0.0/16")))
        self.assertEqual(expected, [2, 1, 2, 3])
        for seed in range(5):
            shuffled = list(entries)
            random.Random(seed).shuffle(shuffled)
            table = _table(shuffled, sort_key=lambda v: v)
            self.assertEqual(list(table.covering(P("10.0.0.0/16"))), expected)

    def test_nested_prefixes_in_any_insertion_order(self):
        entries = [("10.0.0.0/8", 8), ("10.0.0.0/13", 13), ("10.0.0.0/31", 31),
                   ("10.30.2.1/32", 32), ("11.0.0.0/16", 16), ("10.0.0.0/24", 24)]
        for seed in range(5):
            shuffled = list(entries)
            random.Random(seed).shuffle(shuffled)
            table = _table(shuffled)
            with self.subTest(seed=seed):
                self.assertEqual(list(table.covering(P("10.0.0.0/31"))), [31, 24, 13, 8])
                self.assertEqual(list(table.covered_by(P("10.0.0.0/8"))), [8, 13, 24, 31, 32])
                self.assertEqual(list(table.covered_by(P("10.0.0.0/8"), max_length=24)), [8, 13, 24])
                self.assertEqual(table.most_specific(P("10.0.0.1/32")), 31)
                self.assertEqual([str(p) for p, _ in table.items()],
                                 ["10.0.0.0/8", "10.0.0.0/13", "10.0.0.0/24", "10.0.0.0/31",
                                  "10.30.2.1/32", "11.0.0.0/16"])

    def test_default_route(self):
        table = _table([("0.0.0.0/0", "v4"), ("::/0", "v6")])
        self.assertEqual(list(table.covering(P("192.0.2.0/24"))), ["v4"])
        self.assertEqual(list(table.covering(P("2001:db8::/32"))), ["v6"])

    def test_query_before_freeze_fails(self):
        table = PrefixTable()
        table.insert(P("10.0.0.0/8"), "a")
        with self.assertRaises(IndexBuildFailure):
            list(table.covering(P("10.0.0.0/8")))

    def test_insert_after_freeze_fails(self):
        with self.assertRaises(IndexBuildFailure):
            self.table.insert(P("10.0.0.0/8"), "x")

    def test_empty_table(self):
        table = PrefixTable().freeze()
        self.assertEqual(list(table.covering(P("10.0.0.0/8"))), [])
        self.assertEqual(list(table.covered_by(P("::/0"))), [])


class TestAsnRangeIndex(unittest.TestCase):

    def _index(self, ranges):
        index = AsnRangeIndex(sort_key=lambda v: v)
        for first, last, value in ranges:
            index.insert(AsnRange(first, last), value)
        return index.freeze()

    def test_narrowest_range_wins(self):
        index = self._index([(1, 1000, "wide"), (100, 199, "mid"), (150, 150, "single")])
        self.assertEqual(index.lookup(50), "wide")
        self.assertEqual(index.lookup(120), "mid")
        self.assertEqual(index.lookup(150), "single")
        self.assertEqual(index.lookup(151), "mid")
        self.assertEqual(index.lookup(500), "wide")
        self.assertIsNone(index.lookup(1001))
        self.assertIsNone(index.lookup(0))

    def test_insertion_order_irrelevant(self):
        ranges = [(1, 1000, "wide"), (100, 199, "mid"), (150, 150, "single"), (900, 2000, "other")]
        expected = self._index(ranges).segments()
        for seed in range(5):
            shuffled = list(ranges)
            random.Random(seed).shuffle(shuffled)
            self.assertEqual(self._index(shuffled).segments(), expected)

    def test_segments_are_disjoint(self):
        index = self._index([(1, 10, "a"), (5, 20, "b"), (8, 8, "c")])
        segments = index.segments()
        for (_, end, _), (start, _, _) in zip(segments, segments[1:]):
            self.assertLess(end, start)
        self.assertEqual(index.lookup(8), "c")

    def test_lookup_before_freeze_fails(self):
        index = AsnRangeIndex()
        with self.assertRaises(IndexBuildFailure):
            index.lookup(1)


if __name__ == '__main__':
    unittest.main()
