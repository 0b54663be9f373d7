"""
End-to-end tests recording invocation trees through InvocationWatcher.

Run with: pytest tests/integration -m integration -v
"""

import os
import threading

import pytest

from invocation_profiler import (
    InvocationWatcher,
    ProfilerConfig,
    ProfilerError,
    ProfilingSession,
)


@pytest.fixture
def watcher(session):
    return InvocationWatcher(session)


@pytest.fixture
def app(watcher, query_log, dependencies):
    """A tiny host application with instrumented hooks."""

    @watcher.wrap
    def enqueue_assets():
        dependencies.enqueue("scripts", "app")
        dependencies.enqueue("styles", "app-css")

    @watcher.wrap
    def load_posts():
        query_log.record("SELECT * FROM posts", 0.002)
        return ["hello world"]

    @watcher.wrap
    def render_page():
        enqueue_assets()
        posts = load_posts()
        query_log.record("SELECT option_value FROM options", 0.001)
        return posts

    @watcher.wrap
    def failing_hook():
        query_log.record("SELECT 1", 0.001)
        raise ValueError("hook failed")

    return {
        "enqueue_assets": enqueue_assets,
        "load_posts": load_posts,
        "render_page": render_page,
        "failing_hook": failing_hook,
    }


@pytest.mark.integration
class TestInvocationWatcher:
    """Integration tests for the watcher, session and collaborators together."""

    def test_records_call_tree(self, watcher, app, session):
        assert app["render_page"]() == ["hello world"]

        root, enqueue, load = session.invocations()
        assert session.roots() == [root]
        assert root.function_name.endswith("render_page")
        assert root.child_ids == [enqueue.id, load.id]
        assert enqueue.parent is root and load.parent is root
        assert all(invocation.is_finalized for invocation in session)
        assert watcher.depth() == 0

    def test_attributes_side_effects_to_innermost(self, app, session):
        app["render_page"]()
        root, enqueue, load = session.invocations()

        assert [q.sql for q in root.queries()] == ["SELECT option_value FROM options"]
        assert [q.sql for q in load.queries()] == ["SELECT * FROM posts"]
        assert enqueue.queries() == []
        assert enqueue.enqueued("scripts") == ["app"]
        assert enqueue.enqueued("styles") == ["app-css"]
        assert root.enqueued("scripts") == []

    def test_backtraces_hide_instrumentation(self, app, session):
        app["render_page"]()
        load = session.invocations()[2]

        backtrace = load.queries()[0].backtrace
        assert not any(frame.startswith("invocation_profiler.") for frame in backtrace)
        assert backtrace[-1].endswith("load_posts")
        assert any(frame.endswith("render_page") for frame in backtrace)

    def test_failing_callable_is_still_finalized(self, watcher, app, session):
        with pytest.raises(ValueError, match="hook failed"):
            app["failing_hook"]()

        (invocation,) = session.invocations()
        assert invocation.is_finalized
        assert [q.sql for q in invocation.queries()] == ["SELECT 1"]
        assert watcher.current() is None
        assert invocation.export()["events"]["queries"][0]["sql"] == "SELECT 1"

    def test_watch_context_manager(self, watcher, session, clock):
        with watcher.watch("outer", source_file="/srv/app/index.php") as outer:
            assert watcher.current() is outer
            with watcher.watch("inner") as inner:
                clock.advance(0.04)
            clock.advance(0.06)

        assert inner.parent is outer
        assert outer.duration() == pytest.approx(0.1)
        assert outer.duration(own_time=True) == pytest.approx(0.06)

    def test_finish_without_open_invocation(self, watcher):
        with pytest.raises(ProfilerError):
            watcher.finish()

    def test_finish_out_of_order(self, watcher):
        outer = watcher.start("outer")
        watcher.start("inner")

        with pytest.raises(ProfilerError):
            watcher.finish(outer)

    def test_host_exception_survives_unbalanced_start(self, watcher, session, query_log):
        with pytest.raises(ValueError, match="host failure"):
            with watcher.watch("outer") as outer:
                inner = watcher.start("inner")
                query_log.record("SELECT 1", 0.001)
                raise ValueError("host failure")

        assert inner.is_finalized and outer.is_finalized
        assert inner.parent is outer
        assert [q.sql for q in inner.queries()] == ["SELECT 1"]
        assert outer.queries() == []
        assert watcher.current() is None

    def test_watch_closes_invocations_left_open(self, watcher, session):
        with watcher.watch("outer") as outer:
            middle = watcher.start("middle")
            inner = watcher.start("inner")

        assert all(invocation.is_finalized for invocation in (outer, middle, inner))
        assert inner.end_time <= middle.end_time <= outer.end_time
        assert watcher.depth() == 0

        with watcher.watch("next") as following:
            pass
        assert following.parent is None

    def test_export_respects_watcher_policy(self, session, app):
        watcher = InvocationWatcher(session, show_queries=False, exposed_kinds=("scripts",))
        app["render_page"]()

        records = watcher.export()
        enqueue_record = records[1]
        assert enqueue_record["events"] == {"scripts": [enqueue_record["events"]["scripts"][0]]}
        assert enqueue_record["events"]["scripts"][0]["handle"] == "app"
        assert all("queries" not in record.get("events", {}) for record in records)
        assert not watcher.can_show_queries()
        assert not watcher.can_expose_resource_kind("styles")

    def test_first_watcher_becomes_session_policy(self, session):
        watcher = InvocationWatcher(session, show_queries=False)
        other = InvocationWatcher(session)

        assert session.policy is watcher
        assert other.can_expose_resource_kind("queries")

    def test_wrap_records_source_file(self, app, session):
        app["load_posts"]()

        (invocation,) = session.invocations()
        assert os.path.basename(invocation.source_file) == os.path.basename(__file__)
        assert invocation.export()["source"]["file"] == invocation.source_file

    def test_threads_use_independent_stacks(self, watcher, session):
        barrier = threading.Barrier(2)

        def worker(name):
            with watcher.watch(f"{name}.outer"):
                barrier.wait()
                with watcher.watch(f"{name}.inner"):
                    barrier.wait()

        threads = [threading.Thread(target=worker, args=(name,)) for name in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        roots = session.roots()
        assert sorted(root.function_name for root in roots) == ["a.outer", "b.outer"]
        for root in roots:
            (child,) = root.children
            assert child.function_name == root.function_name.replace("outer", "inner")

    def test_from_config(self):
        config = ProfilerConfig(show_queries=False, location_roots={"plugin": "/srv/plugins"})

        watcher = InvocationWatcher.from_config(config)

        assert isinstance(watcher.session, ProfilingSession)
        assert watcher.session.policy is watcher
        with watcher.watch("hook", source_file="/srv/plugins/seo/seo.php") as invocation:
            watcher.session.trackers[0].record("SELECT 1", 0.001)

        data = invocation.export()
        assert data["source"]["type"] == "plugin"
        assert data["source"]["name"] == "seo"
        assert "events" not in data
