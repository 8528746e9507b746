# ==============================================================================
# Tests for DependencyChecker and InMemoryCatalog
# ==============================================================================
"""
Tests for transitive readiness of a table's dependents, including detached
objects, views without targets and cyclic registrations.
"""

from streamtable.core.dependencies import DependencyChecker
from streamtable.infrastructure.catalog import InMemoryCatalog, MaterializedView, TargetTable

SOURCE = "test.queue"


class TestCounting:
    def test_no_dependents(self):
        checker = DependencyChecker(InMemoryCatalog())
        assert checker.count_dependents(SOURCE) == 0

    def test_counts_direct_dependents_only(self):
        catalog = InMemoryCatalog()
        catalog.add(TargetTable("test.a"), source=SOURCE)
        catalog.add(TargetTable("test.b"), source=SOURCE)
        catalog.add(TargetTable("test.c"), source="test.a")

        assert DependencyChecker(catalog).count_dependents(SOURCE) == 2


class TestReadiness:
    def test_target_table_is_ready(self):
        catalog = InMemoryCatalog()
        catalog.add(TargetTable("test.events"), source=SOURCE)
        checker = DependencyChecker(catalog)

        assert checker.all_ready(SOURCE) is True

    def test_view_with_missing_target_is_not_ready(self):
        catalog = InMemoryCatalog()
        catalog.add(MaterializedView("test.mv", target_name="test.events"), source=SOURCE)

        assert DependencyChecker(catalog).all_ready(SOURCE) is False

    def test_view_becomes_ready_once_target_exists(self):
        catalog = InMemoryCatalog()
        catalog.add(MaterializedView("test.mv", target_name="test.events"), source=SOURCE)
        checker = DependencyChecker(catalog)
        assert checker.all_ready(SOURCE) is False

        catalog.add(TargetTable("test.events"))
        assert checker.all_ready(SOURCE) is True

    def test_detached_dependent_is_not_ready(self):
        catalog = InMemoryCatalog()
        catalog.add(TargetTable("test.events"), source=SOURCE)
        catalog.remove("test.events")

        checker = DependencyChecker(catalog)
        assert checker.count_dependents(SOURCE) == 1
        assert checker.all_ready(SOURCE) is False

    def test_transitive_failure(self):
        catalog = InMemoryCatalog()
        catalog.add(TargetTable("test.events"))
        catalog.add(MaterializedView("test.mv1", target_name="test.events"), source=SOURCE)
        catalog.add(MaterializedView("test.mv2", target_name="test.rollup"), source="test.mv1")

        assert DependencyChecker(catalog).all_ready(SOURCE) is False

        catalog.add(TargetTable("test.rollup"))
        assert DependencyChecker(catalog).all_ready(SOURCE) is True

    def test_cycle_terminates(self):
        catalog = InMemoryCatalog()
        catalog.add(TargetTable("test.a"), source=SOURCE)
        catalog.add(TargetTable("test.b"), source="test.a")
        catalog.link("test.b", "test.a")
        catalog.link("test.a", SOURCE)
        catalog.add(TargetTable(SOURCE))

        assert DependencyChecker(catalog).all_ready(SOURCE) is True
