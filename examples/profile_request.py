"""
Simulate a request through a small plugin-style host, record every hook
invocation and export the invocation tree as JSON.
"""

import argparse
import json
import logging
import time

from invocation_profiler import (
    DependencyQueues,
    InvocationWatcher,
    ProfilerConfig,
    ProfilingSession,
    QueryLog,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def build_host(watcher: InvocationWatcher, queries: QueryLog, assets: DependencyQueues):
    """Define the instrumented hooks of the simulated host."""

    @watcher.wrap
    def load_options():
        queries.record("SELECT option_name, option_value FROM options WHERE autoload = 'yes'", 0.004)
        time.sleep(0.002)

    @watcher.wrap
    def enqueue_theme_assets():
        assets.enqueue("styles", "theme-style")
        assets.enqueue("scripts", "theme-navigation")

    @watcher.wrap
    def render_sidebar():
        queries.record("SELECT * FROM posts ORDER BY post_date DESC LIMIT 5", 0.003)
        assets.enqueue("scripts", "sidebar-widgets")
        time.sleep(0.001)

    @watcher.wrap
    def render_page():
        enqueue_theme_assets()
        queries.record("SELECT * FROM posts WHERE ID = 42", 0.002)
        render_sidebar()

    @watcher.wrap
    def handle_request():
        load_options()
        render_page()

    return handle_request


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description='Record a simulated request and export its invocation tree'
    )
    parser.add_argument(
        '--output',
        default='invocations.json',
        help='Output file for the exported invocations'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = ProfilerConfig.from_env()
    queries = QueryLog(ignored_frame_prefixes=config.ignored_frame_prefixes)
    assets = DependencyQueues(ignored_frame_prefixes=config.ignored_frame_prefixes)
    session = ProfilingSession.from_config(config, trackers=[queries, assets])
    watcher = InvocationWatcher.from_config(config, session=session)

    handle_request = build_host(watcher, queries, assets)
    handle_request()

    for invocation in session:
        logger.info(
            f"#{invocation.id} {invocation.function_name}: "
            f"{invocation.duration() * 1000:.2f}ms total, "
            f"{invocation.duration(own_time=True) * 1000:.2f}ms own"
        )

    with open(args.output, "w", encoding="utf-8") as fh:
        json.dump(watcher.export(), fh, indent=2)
    logger.info(f"Exported {len(session)} invocations to {args.output}")


if __name__ == "__main__":
    main()
