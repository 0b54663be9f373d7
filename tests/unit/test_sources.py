"""
Unit tests for the in-memory collaborators and backtrace helpers.
"""

import pytest

from invocation_profiler import (
    DependencyQueues,
    FileLocator,
    ProfilerConfig,
    ProfilingSession,
    QueryLog,
)
from invocation_profiler.backtrace import capture_backtrace, clean_backtrace, split_backtrace


def load_posts(query_log):
    return query_log.record("SELECT * FROM posts", 0.003)


class TestBacktrace:
    """Test cases for backtrace capture and cleaning."""

    def test_split_summary(self):
        assert split_backtrace("main, handle_request, Repo.load") == ["main", "handle_request", "Repo.load"]
        assert split_backtrace("") == []
        assert split_backtrace(None) == []
        assert split_backtrace(["a", "b"]) == ["a", "b"]

    def test_clean_strips_profiler_frames(self):
        raw = (
            "main, invocation_profiler.watcher.InvocationWatcher.wrap.<locals>.wrapper, "
            "contextlib._GeneratorContextManager.__enter__, app.render"
        )

        assert clean_backtrace(raw) == ["main", "app.render"]

    def test_clean_with_custom_prefixes(self):
        assert clean_backtrace(["a.x", "b.y", "a.z"], ignored_prefixes=("a.",)) == ["b.y"]
        assert clean_backtrace(["a.x", "b.y"], ignored_prefixes=()) == ["a.x", "b.y"]

    def test_capture_includes_caller(self):
        def outer():
            return capture_backtrace()

        frames = split_backtrace(outer())

        assert frames[-1].endswith("outer")
        assert any(frame.endswith("test_capture_includes_caller") for frame in frames)

    def test_capture_limit(self):
        assert len(split_backtrace(capture_backtrace(limit=2))) == 2


class TestQueryLog:
    """Test cases for QueryLog."""

    def test_record_captures_backtrace_and_timestamp(self, query_log):
        index = load_posts(query_log)

        record = query_log.queries[index]
        assert index == 0
        assert record.sql == "SELECT * FROM posts"
        assert record.timestamp is not None
        assert split_backtrace(record.backtrace)[-1].endswith("load_posts")

    def test_counts(self, query_log):
        assert query_log.get_before_counts() == {"queries": 0}
        query_log.record("SELECT 1", 0.001, backtrace="")
        query_log.record("SELECT 2", 0.001, backtrace="")

        assert query_log.get_before_counts() == {"queries": 2}
        assert query_log.num_queries == 2
        assert query_log.kinds == ("queries",)

    def test_identify_excludes_descendants(self, session, query_log):
        root = session.open("root")
        query_log.record("SELECT a", 0.001, backtrace="")
        child = session.open("child", parent=root)
        query_log.record("SELECT b", 0.001, backtrace="")
        child.finalize()
        query_log.record("SELECT c", 0.001, backtrace="")

        events = query_log.identify_events(root, "queries")

        assert [(e.index, e.sql) for e in events] == [(0, "SELECT a"), (2, "SELECT c")]

    def test_identify_other_kind(self, session, query_log):
        invocation = session.open("handler")
        query_log.record("SELECT 1", 0.001, backtrace="")

        assert query_log.identify_events(invocation, "scripts") == []

    def test_backtrace_is_cleaned(self, session, query_log):
        invocation = session.open("handler")
        query_log.record("SELECT 1", 0.001, backtrace="main, invocation_profiler.watcher.wrapper, render")
        invocation.finalize()

        assert invocation.queries()[0].backtrace == ["main", "render"]


class TestDependencyQueues:
    """Test cases for DependencyQueues."""

    def test_enqueue_and_snapshot(self, dependencies):
        assert dependencies.enqueue("scripts", "jquery", backtrace="") == 0
        assert dependencies.enqueue("scripts", "jquery", backtrace="") is None
        assert dependencies.enqueue("scripts", "app", backtrace="") == 1

        assert dependencies.get_queue_snapshot("scripts") == ("jquery", "app")
        assert dependencies.get_dependency_queue("styles") == []
        assert dependencies.get_before_counts() == {"scripts": 2, "styles": 0}

    def test_unknown_kind(self, dependencies):
        with pytest.raises(KeyError):
            dependencies.enqueue("fonts", "roboto")

    def test_custom_kinds(self, clock):
        dependencies = DependencyQueues(kinds=("modules",))
        session = ProfilingSession(trackers=[dependencies], clock=clock)
        invocation = session.open("handler")
        dependencies.enqueue("modules", "interactivity", backtrace="main, invocation_profiler.x, register")
        invocation.finalize()

        event = invocation.events("modules")[0]
        assert event.handle == "interactivity"
        assert event.backtrace == ["main", "register"]
        assert invocation.enqueued("modules") == ["interactivity"]


class TestFileLocator:
    """Test cases for FileLocator."""

    @pytest.fixture
    def locator(self):
        return FileLocator({
            "core": "/srv/app",
            "plugin": "/srv/app/content/plugins",
            "mu-plugin": "/srv/app/content/mu-plugins",
            "theme": "/srv/app/content/themes",
        })

    def test_longest_root_wins(self, locator):
        location = locator.identify("/srv/app/content/themes/twentytwenty/functions.php")

        assert location.type == "theme"
        assert location.name == "twentytwenty"

    def test_single_file_plugin(self, locator):
        location = locator.identify("/srv/app/content/plugins/hello.php")

        assert (location.type, location.name) == ("plugin", "hello.php")

    def test_core(self, locator):
        location = locator.identify("/srv/app/includes/plugin.php")

        assert (location.type, location.name) == ("core", "includes")

    def test_unknown(self, locator):
        assert locator.identify("/usr/lib/python3/os.py") is None
        assert locator.identify(None) is None
        assert locator.identify("/srv/app") is None

    def test_windows_separators(self, locator):
        location = locator.identify("\\srv\\app\\content\\mu-plugins\\loader.php")

        assert (location.type, location.name) == ("mu-plugin", "loader.php")


class TestProfilerConfig:
    """Test cases for ProfilerConfig."""

    def test_defaults(self):
        config = ProfilerConfig.from_env({})

        assert config.show_queries is True
        assert config.exposed_kinds is None
        assert "invocation_profiler." in config.ignored_frame_prefixes

    def test_from_env(self):
        config = ProfilerConfig.from_env({
            "INVOCATION_PROFILER_SHOW_QUERIES": "no",
            "INVOCATION_PROFILER_EXPOSED_KINDS": "scripts, styles",
            "INVOCATION_PROFILER_IGNORED_FRAMES": "myhost.hooks.,",
        })

        assert config.show_queries is False
        assert config.exposed_kinds == ("scripts", "styles")
        assert config.ignored_frame_prefixes == ("myhost.hooks.",)

    def test_session_from_config(self):
        config = ProfilerConfig(
            ignored_frame_prefixes=("myhost.",),
            location_roots={"plugin": "/srv/plugins"},
        )

        session = ProfilingSession.from_config(config)

        assert [type(tracker) for tracker in session.trackers] == [QueryLog, DependencyQueues]
        assert session.trackers[0].ignored_frame_prefixes == ("myhost.",)
        assert isinstance(session.location_resolver, FileLocator)
