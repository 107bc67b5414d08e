import threading
import unittest

from routing_stats.utils.parallel import ParallelExecutor, auto_workers, chunked, parallel_fold


def _square(value):
    return value * value


class TestParallelExecutor(unittest.TestCase):

    def test_execute_batch_captures_failures(self):
        def task(value, offset=0):
            if value == 3:
                raise ValueError("three")
            return value + offset

        with ParallelExecutor(max_workers=3) as executor:
            results = executor.execute_batch([1, 2, 3, 4], task, offset=10)

        self.assertEqual([r.item for r in results], [1, 2, 3, 4])
        self.assertEqual([r.result for r in results if r.success], [11, 12, 14])
        failed = [r for r in results if not r.success]
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0].error, "three")

    def test_map_ordered_preserves_order_and_raises(self):
        with ParallelExecutor(max_workers=4) as executor:
            self.assertEqual(executor.map_ordered(list(range(20)), _square),
                             [i * i for i in range(20)])

        def boom(value):
            raise RuntimeError(f"failed on {value}")

        with ParallelExecutor(max_workers=2) as executor:
            with self.assertRaises(RuntimeError):
                executor.map_ordered([1, 2], boom)

    def test_shutdown_refuses_new_work(self):
        executor = ParallelExecutor(max_workers=2)
        executor.shutdown()
        self.assertEqual(executor.execute_batch([1], _square), [])
        with self.assertRaises(RuntimeError):
            executor.map_ordered([1], _square)


class TestFold(unittest.TestCase):

    def test_chunked(self):
        self.assertEqual(chunked([1, 2, 3, 4, 5], 2), [[1, 2], [3, 4], [5]])
        self.assertEqual(chunked([], 3), [])
        with self.assertRaises(ValueError):
            chunked([1], 0)

    def test_fold_matches_sequential(self):
        items = list(range(1000))
        for workers, chunk_size in ((1, 10), (4, 1), (4, 33), (8, 5000)):
            with self.subTest(workers=workers, chunk_size=chunk_size):
                result = parallel_fold(items, lambda chunk: [_square(i) for i in chunk],
                                       lambda acc, part: acc + part, [],
                                       max_workers=workers, chunk_size=chunk_size)
                self.assertEqual(result, [_square(i) for i in items])

    def test_fold_uses_threads(self):
        names = set()

        def record(chunk):
            names.add(threading.current_thread().name)
            return len(chunk)

        total = parallel_fold(list(range(100)), record, lambda a, b: a + b, 0,
                              max_workers=4, chunk_size=10)
        self.assertEqual(total, 100)
        self.assertTrue(all(name.startswith("routing-stats") for name in names))

    def test_empty_input_returns_initial(self):
        self.assertEqual(parallel_fold([], len, lambda a, b: a + b, 7), 7)

    def test_auto_workers(self):
        self.assertEqual(auto_workers(100, 3), 3)
        self.assertEqual(auto_workers(1), 1)
        self.assertLessEqual(auto_workers(1000), 16)


if __name__ == '__main__':
    unittest.main()
