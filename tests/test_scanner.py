"""Tests for the concurrent category scanner."""

from __future__ import annotations

import threading

from cachesweep.core.scanner import Scanner
from cachesweep.core.walker import Walker
from cachesweep.models.category import Category
from helpers import write_file


class FailingWalker(Walker):
    """Yields one item per root, then blows up."""

    def walk(self, root, category, on_progress=None):
        for item in super().walk(root, category, on_progress):
            yield item
            raise RuntimeError("disk went away")


class TestScan:
    def test_full_scan(self, fake_home, fake_tmp):
        report = Scanner(home=fake_home, temp_dir=fake_tmp).scan()

        assert [r.category.label for r in report.results] == [
            "Application Caches",
            "Browser Data",
            "Logs & Crash Reports",
            "Old Downloads",
            "System Caches",
            "Temporary Files",
        ]
        assert report.total_bytes == 3072 + 1500 + 300 + 10 + 1000 + 4096
        assert report.get(Category.OLD_DOWNLOADS).items[0].name == "old.zip"

    def test_groups_partition_items(self, fake_home, fake_tmp):
        report = Scanner(home=fake_home, temp_dir=fake_tmp).scan()

        for result in report.results:
            grouped = [item for g in result.groups for item in g.items]
            assert sorted(map(id, grouped)) == sorted(map(id, result.items))

    def test_application_groups(self, fake_home, fake_tmp):
        report = Scanner(home=fake_home, temp_dir=fake_tmp).scan([Category.APPLICATION_CACHES])
        (result,) = report.results
        assert [g.name for g in result.groups] == ["Adobe Lightroom", "Notes", "Zoom"]

    def test_empty_categories_are_omitted(self, tmp_path):
        home = tmp_path / "home"
        write_file(home / "Library" / "Logs" / "app.log", 10)

        report = Scanner(home=home, temp_dir=tmp_path / "no-tmp").scan()

        assert [r.category for r in report.results] == [Category.LOGS]

    def test_empty_request(self, fake_home):
        report = Scanner(home=fake_home).scan([])
        assert report.results == ()

    def test_duplicate_categories_scanned_once(self, fake_home, fake_tmp):
        done = []
        report = Scanner(home=fake_home, temp_dir=fake_tmp).scan(
            [Category.LOGS, Category.LOGS], on_category_done=lambda c, f: done.append((c, f))
        )
        assert len(report.results) == 1
        assert done == [(Category.LOGS, 1.0)]

    def test_each_scan_returns_new_report(self, fake_home, fake_tmp):
        scanner = Scanner(home=fake_home, temp_dir=fake_tmp)
        first = scanner.scan([Category.LOGS])
        second = scanner.scan([Category.LOGS])
        assert first is not second
        assert first.results[0].items[0] is not second.results[0].items[0]


class TestCallbacks:
    def test_category_done_fractions(self, fake_home, fake_tmp):
        fractions = []
        lock = threading.Lock()

        def on_done(category, fraction):
            with lock:
                fractions.append(fraction)

        Scanner(home=fake_home, temp_dir=fake_tmp).scan(on_category_done=on_done)

        assert len(fractions) == len(Category)
        assert fractions == sorted(fractions)
        assert fractions[-1] == 1.0

    def test_discovered_totals_match_report(self, fake_home, fake_tmp):
        totals: dict[Category, list[int]] = {}
        lock = threading.Lock()

        def on_discovered(category, count, size):
            with lock:
                entry = totals.setdefault(category, [0, 0])
                entry[0] += count
                entry[1] += size

        report = Scanner(home=fake_home, temp_dir=fake_tmp).scan(on_discovered=on_discovered)

        for result in report.results:
            assert totals[result.category] == [len(result.items), result.total_bytes]


class TestErrors:
    def test_failing_category_keeps_partial_items(self, fake_home, fake_tmp):
        scanner = Scanner(FailingWalker(), home=fake_home, temp_dir=fake_tmp)

        report = scanner.scan([Category.SYSTEM_CACHES, Category.OLD_DOWNLOADS])

        assert len(report.get(Category.SYSTEM_CACHES).items) == 1
        assert len(report.get(Category.OLD_DOWNLOADS).items) == 1

    def test_locator_error_does_not_abort_other_categories(self, fake_home, fake_tmp):
        def locator(category, home, temp_dir):
            if category is Category.LOGS:
                raise OSError("no logs for you")
            return [fake_tmp]

        scanner = Scanner(locator=locator, home=fake_home, temp_dir=fake_tmp)
        report = scanner.scan([Category.LOGS, Category.TEMPORARY_FILES])

        assert [r.category for r in report.results] == [Category.TEMPORARY_FILES]

    def test_scan_category(self, fake_home, fake_tmp):
        result = Scanner(home=fake_home, temp_dir=fake_tmp).scan_category(Category.LOGS)
        assert sorted(i.name for i in result.items) == ["app.crash", "zoom.log"]
        assert [g.name for g in result.groups] == ["DiagnosticReports", "Zoom"]
