import tempfile
import textwrap
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from tickwork.cadences import DAY, MILLISECOND, MINUTE, SECOND, WEEK
from tickwork.config_loader import _parse_duration, _parse_every, load_config


class ConfigFileMixin:
    def write_config(self, content: str) -> Path:
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        path = Path(directory.name) / "tickwork.yaml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path


class LoadConfigTests(ConfigFileMixin, unittest.TestCase):
    def test_full_configuration(self):
        path = self.write_config(
            """
            log_level: debug
            scheduler:
              poll_interval: 10s
              join_timeout: 500ms
            jobs:
              - name: heartbeat
                task: time:monotonic
                every: 15s
                max_runs: 3
              - name: invoices
                task: time:time
                every: {amount: 1, unit: months}
                start: "2026-01-31T06:00:00Z"
                end: 2026-12-31
                not_immediately: true
            """
        )
        config = load_config(path)

        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.scheduler.poll_interval, timedelta(seconds=10))
        self.assertEqual(config.scheduler.join_timeout, timedelta(milliseconds=500))

        heartbeat, invoices = config.jobs
        self.assertEqual(heartbeat.name, "heartbeat")
        self.assertEqual(heartbeat.task, "time:monotonic")
        self.assertEqual(heartbeat.cadence.kind, "periodic")
        self.assertEqual(heartbeat.cadence.amount, 15)
        self.assertEqual(heartbeat.cadence.unit, SECOND)
        self.assertEqual(heartbeat.max_runs, 3)
        self.assertIsNone(heartbeat.cadence.start)

        self.assertEqual(invoices.cadence.kind, "monthly")
        self.assertEqual(
            invoices.cadence.start, datetime(2026, 1, 31, 6, 0, tzinfo=timezone.utc)
        )
        self.assertEqual(invoices.cadence.end, datetime(2026, 12, 31, tzinfo=timezone.utc))
        self.assertTrue(invoices.cadence.skip_first)
        self.assertIsNone(invoices.max_runs)

    def test_defaults(self):
        config = load_config(self.write_config("jobs: []\n"))
        self.assertEqual(config.jobs, ())
        self.assertEqual(config.scheduler.poll_interval, timedelta(seconds=30))
        self.assertEqual(config.log_level, "INFO")

    def test_unnamed_jobs_get_positional_names(self):
        config = load_config(self.write_config("jobs:\n  - task: time:time\n"))
        self.assertEqual(config.jobs[0].name, "job-0")

    def test_root_must_be_mapping(self):
        with self.assertRaises(ValueError):
            load_config(self.write_config("- just\n- a list\n"))

    def test_duplicate_job_names(self):
        path = self.write_config(
            """
            jobs:
              - {name: a, task: "time:time"}
              - {name: a, task: "time:time"}
            """
        )
        with self.assertRaisesRegex(ValueError, "duplicate"):
            load_config(path)

    def test_errors_name_the_job(self):
        path = self.write_config(
            """
            jobs:
              - name: broken
                task: time:time
                every: 3 fortnights
            """
        )
        with self.assertRaisesRegex(ValueError, "broken"):
            load_config(path)

    def test_missing_task(self):
        with self.assertRaisesRegex(ValueError, "task"):
            load_config(self.write_config("jobs:\n  - name: x\n"))

    def test_negative_max_runs(self):
        path = self.write_config("jobs:\n  - {name: x, task: 'time:time', max_runs: -1}\n")
        with self.assertRaises(ValueError):
            load_config(path)


class ParseEveryTests(unittest.TestCase):
    def test_periodic_forms(self):
        cases = {
            "10s": ("periodic", 10, SECOND),
            "250ms": ("periodic", 250, MILLISECOND),
            "5 minutes": ("periodic", 5, MINUTE),
            "day": ("periodic", 1, DAY),
            "2 weeks": ("periodic", 2, WEEK),
            "30 secs": ("periodic", 30, SECOND),
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(_parse_every(raw), expected)

    def test_calendar_forms(self):
        self.assertEqual(_parse_every("3 months")[:2], ("monthly", 3))
        self.assertEqual(_parse_every("1mo")[:2], ("monthly", 1))
        self.assertEqual(_parse_every({"amount": 2, "unit": "year"})[:2], ("yearly", 2))

    def test_plain_number_is_seconds(self):
        self.assertEqual(_parse_every(45), ("periodic", 45, SECOND))

    def test_rejects_unknown_units(self):
        with self.assertRaises(ValueError):
            _parse_every("4 fortnights")
        with self.assertRaises(ValueError):
            _parse_every(["1s"])


class ParseDurationTests(unittest.TestCase):
    def test_units(self):
        self.assertEqual(_parse_duration("30s"), timedelta(seconds=30))
        self.assertEqual(_parse_duration("1.5m"), timedelta(seconds=90))
        self.assertEqual(_parse_duration("2h"), timedelta(hours=2))
        self.assertEqual(_parse_duration("1w"), timedelta(weeks=1))
        self.assertEqual(_parse_duration("20"), timedelta(seconds=20))
        self.assertEqual(_parse_duration(2.5), timedelta(seconds=2.5))

    def test_sub_microsecond_units(self):
        self.assertEqual(_parse_duration("5000ns"), timedelta(microseconds=5))
        self.assertEqual(_parse_duration("1500us"), timedelta(microseconds=1500))
        self.assertEqual(_parse_duration("250ms"), timedelta(milliseconds=250))
        self.assertEqual(_parse_duration("400ns"), timedelta(0))

    def test_invalid(self):
        for value in ("soon", "5y", None):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    _parse_duration(value)


if __name__ == "__main__":
    unittest.main()
