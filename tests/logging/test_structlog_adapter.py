# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for StructlogAdapter and configure_logging."""

import logging

import pytest
import structlog

from flysearch.core.config import Config
from flysearch.logging import configure_logging
from flysearch.logging.structlog_adapter import StructlogAdapter


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"flysearch": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter._root_level == "DEBUG"

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"flysearch": {"logging": {"format": "JSON"}}}))
        assert adapter._format == "json"

    def test_configure_reads_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"flysearch": {"logging": {"level": {"root": "INFO", "flysearch.searchable": "DEBUG"}}}})
        adapter.configure(config)
        assert adapter._module_levels == {"flysearch.searchable": "DEBUG"}
        assert logging.getLogger("flysearch.searchable").level == logging.DEBUG

    def test_configure_logging_uses_library_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        adapter = configure_logging()
        assert adapter._format == "console"
        assert adapter._root_level == "INFO"


class TestStructlogAdapterLoggers:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("flysearch.test")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))

    def test_set_level_updates_module_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        adapter.set_level("flysearch.predicable", "WARNING")
        assert logging.getLogger("flysearch.predicable").level == logging.WARNING

    def test_events_are_captured(self):
        with structlog.testing.capture_logs() as logs:
            structlog.get_logger("flysearch.test").warning("search_rejected", model="Article")
        assert logs == [{"event": "search_rejected", "model": "Article", "log_level": "warning"}]
