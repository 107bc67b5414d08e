import logging
import unittest

from routing_stats.utils.logging import LoggingTimer, RoutingStatsFormatter, get_logger


def _record(message="Published snapshot", level=logging.INFO, **context):
    record = logging.LogRecord("routing-stats.test", level, __file__, 1, message, (), None)
    for key, value in context.items():
        setattr(record, key, value)
    return record


class TestFormatter(unittest.TestCase):

    def setUp(self):
        self.formatter = RoutingStatsFormatter("%(levelname)s %(message)s")

    def test_plain_message(self):
        self.assertEqual(self.formatter.format(_record()), "INFO Published snapshot")

    def test_context_tags_in_order(self):
        record = _record(duration=1.23456, snapshot_version=3, records=42, source="vrps.csv")
        self.assertEqual(self.formatter.format(record),
                         "INFO Published snapshot [vrps.csv] [snapshot v3] [42 records] [took 1.235s]")

    def test_none_context_is_omitted(self):
        self.assertEqual(self.formatter.format(_record(source="ris.gz", duration=None)),
                         "INFO Published snapshot [ris.gz]")

    def test_colors(self):
        formatted = RoutingStatsFormatter("%(message)s", use_colors=True).format(
            _record(level=logging.ERROR))
        self.assertTrue(formatted.startswith("\033[31m"))
        self.assertTrue(formatted.endswith("\033[0m"))


class TestRoutingStatsLogger(unittest.TestCase):

    def test_bind_and_extra(self):
        logger = get_logger('routing-stats.test', source="delegated")
        bound = logger.bind(snapshot_version=2)
        with self.assertLogs('routing-stats.test', level='INFO') as logs:
            bound.info("Reloaded", extra={"snapshot_version": 5, "records": 10})
            logger.info("Plain")
        first, second = logs.records
        self.assertEqual((first.source, first.snapshot_version, first.records), ("delegated", 5, 10))
        self.assertEqual(second.source, "delegated")
        self.assertFalse(hasattr(second, 'snapshot_version'))

    def test_time_operation(self):
        logger = get_logger('routing-stats.test')

        @logger.time_operation("index build")
        def build(value):
            return value * 2

        @logger.time_operation()
        def broken():
            raise ValueError("bad input")

        with self.assertLogs('routing-stats.test', level='INFO') as logs:
            self.assertEqual(build(21), 42)
        self.assertEqual([r.getMessage() for r in logs.records],
                         ["Starting index build", "Completed index build"])
        self.assertGreaterEqual(logs.records[1].duration, 0)

        with self.assertLogs('routing-stats.test', level='ERROR') as logs:
            with self.assertRaises(ValueError):
                broken()
        self.assertEqual(logs.records[0].getMessage(), "Failed routing-stats.test.broken: bad input")
        self.assertIsNotNone(logs.records[0].exc_info)

    def test_parse_summary(self):
        logger = get_logger('routing-stats.test')
        with self.assertLogs('routing-stats.test', level='INFO') as logs:
            logger.log_parse_summary("vrps.csv", 3, 2, 0.5)
            logger.log_parse_summary("empty.csv", 0, 7)
        ok, empty = logs.records
        self.assertEqual((ok.levelno, ok.getMessage(), ok.source, ok.records),
                         (logging.INFO, "Read 3 records, skipped 2", "vrps.csv", 3))
        self.assertEqual(empty.levelno, logging.WARNING)
        self.assertIsNone(empty.duration)

    def test_batch_summary(self):
        logger = get_logger('routing-stats.test')
        with self.assertLogs('routing-stats.test', level='INFO') as logs:
            logger.log_batch_summary("file read", 3, 3, 0.1)
            logger.log_batch_summary("file read", 3, 2, 0.1)
        self.assertEqual([(r.levelno, r.getMessage()) for r in logs.records],
                         [(logging.INFO, "file read: 3/3 succeeded"),
                          (logging.WARNING, "file read: 2/3 succeeded, 1 failed")])


class TestLoggingTimer(unittest.TestCase):

    def test_success_and_failure(self):
        logger = get_logger('routing-stats.test')
        with self.assertLogs('routing-stats.test', level='INFO') as logs:
            with LoggingTimer(logger, "aggregation") as timer:
                pass
            with self.assertRaises(KeyError):
                with LoggingTimer(logger, "classification"):
                    raise KeyError("AS0")
        self.assertEqual([r.getMessage() for r in logs.records],
                         ["Starting aggregation", "Completed aggregation",
                          "Starting classification", "Failed classification: 'AS0'"])
        self.assertEqual(logs.records[1].duration, timer.duration)
        self.assertEqual(logs.records[3].levelno, logging.ERROR)


if __name__ == '__main__':
    unittest.main()
