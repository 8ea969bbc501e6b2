"""Shared test fixtures."""

import logging
import textwrap

import pytest

from jobplan.core.agent import TaskDescriptor


@pytest.fixture(autouse=True)
def restore_loggers():
    """Undo and close the handlers setup_logging installs when the CLI runs."""
    saved = []
    for logger in (logging.getLogger(), logging.getLogger("jobplan")):
        saved.append((logger, logger.handlers[:], logger.level, logger.propagate))
    yield
    for logger, handlers, level, propagate in saved:
        for handler in logger.handlers[:]:
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate


class RecordingAgent:
    """Agent double that records the order of calls made by a Job."""

    def __init__(self, groups, calls=None):
        self.groups = groups
        self.calls = calls if calls is not None else []
        self.setup_count = 0

    def apply_setup(self):
        self.setup_count += 1
        self.calls.append("apply_setup")

    def execution_topology(self):
        self.calls.append("execution_topology")
        return self.groups


def make_groups(*groups):
    return [[TaskDescriptor(task_id) for task_id in group] for group in groups]


@pytest.fixture()
def make_agent():
    def _make(*groups):
        return RecordingAgent(make_groups(*groups))
    return _make


@pytest.fixture()
def job_file(tmp_path):
    """Write a YAML job file and return its path."""
    def _write(content, name="job.yaml"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return str(path)
    return _write


CATALOG_JOB = """\
version: "1.0"
uid: nightly-catalog
scraper: catalog-site
agent:
  name: catalog
  plan:
    - login
    - [list_products, list_reviews]
    - task_id: export
      self_sync: true
params:
  since: "2024-01-01"
tasks: [list_reviews, list_products, export]
"""
