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
"""StructlogAdapter: configures structlog from flysearch.logging.* settings."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from flysearch.config.properties.logging import LoggingProperties
from flysearch.core.config import Config


class StructlogAdapter:
    """Logging adapter backed by structlog.

    Reads ``flysearch.logging.format`` (``console`` or ``json``) and
    ``flysearch.logging.level.*`` where ``root`` sets the root level and any
    other key sets a per-logger level, e.g. ``flysearch.searchable: DEBUG``.
    """

    def __init__(self) -> None:
        self._root_level: str = "INFO"
        self._format: str = "console"
        self._module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        props = config.bind(LoggingProperties)
        levels = dict(props.level)
        self._root_level = str(levels.pop("root", "INFO")).upper()
        self._module_levels = {k: str(v).upper() for k, v in levels.items()}
        self._format = str(props.format).lower()

        self._setup_structlog()
        for module, level in self._module_levels.items():
            self.set_level(module, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(getattr(logging, level.upper(), logging.INFO))

    def _setup_structlog(self) -> None:
        processors: list[structlog.types.Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
        ]

        if self._format == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer())

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, self._root_level, logging.INFO),
            force=True,
        )


def configure_logging(config: Config | None = None) -> StructlogAdapter:
    """Configure structlog from *config* (library defaults when omitted)."""
    adapter = StructlogAdapter()
    adapter.configure(config if config is not None else Config.from_sources("."))
    return adapter
