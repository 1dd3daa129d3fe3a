"""Priority-ordered, runtime-configurable registry of error parsers.

Each registered name owns one parser plus its priority, enabled flag,
configuration (plugin or factory backed parsers only), metrics and optional
health checker. ``parse`` consults enabled parsers by priority, highest first,
ties broken by registration order, and returns the first match.

Registration and configuration take the table lock exclusively; ``parse`` and
getters share it. Parsers run outside the lock on a snapshot of the table, and
plugins and factories build parsers before the lock is taken.
Metrics have their own mutex.
"""

from __future__ import annotations

import copy
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping

from ..logging import fields
from ..logging.config import get_logger
from ..logging.context import error_fields, log_context
from .base import ErrorParser, ParsedError
from .builtin import BuiltinErrorParser
from .cloud import AWSErrorParser
from .database import MySQLErrorParser, PostgreSQLErrorParser, SQLErrorParser
from .errors import (
    NoParserFoundError,
    ParseCancelledError,
    ParserExecutionError,
    ParserNotConfigurableError,
    ParserNotFoundError,
    ParserRegistrationError,
    UnsupportedParserTypeError,
)
from .network import NetworkErrorParser, TimeoutErrorParser
from .nosql import MongoDBErrorParser, RedisErrorParser
from .plugins import CustomParserFactory, ParserFactory, ParserPlugin
from .protocol import GRPCErrorParser, HTTPErrorParser
from .telemetry import (
    OUTCOME_CANCELLED,
    OUTCOME_FAILED,
    OUTCOME_MATCHED,
    OUTCOME_MISS,
    ClassificationMetrics,
    create_classification_metrics,
)

if TYPE_CHECKING:
    from ..config.models import FaultlineSettings, RegistrySettings, TelemetrySettings

_LOGGER = get_logger(__name__)

PLUGIN_PRIORITY = 50
CUSTOM_FACTORY_NAME = "custom"

HealthChecker = Callable[[], None]

# name -> (constructor, priority)
BUILTIN_PARSERS: dict[str, tuple[Callable[[], ErrorParser], int]] = {
    "timeout": (TimeoutErrorParser, 90),
    "network": (NetworkErrorParser, 80),
    "grpc": (GRPCErrorParser, 70),
    "http": (HTTPErrorParser, 70),
    "postgresql": (PostgreSQLErrorParser, 60),
    "mysql": (MySQLErrorParser, 60),
    # Exact builtin types outrank the text heuristics below.
    "builtin": (BuiltinErrorParser, 55),
    "redis": (RedisErrorParser, 50),
    "mongodb": (MongoDBErrorParser, 50),
    "aws": (AWSErrorParser, 40),
    "sql": (SQLErrorParser, 20),
}


class CancellationToken:
    """Cooperative cancellation flag with an optional deadline."""

    def __init__(self, *, deadline: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> CancellationToken:
        """Return a token that reports cancelled once ``seconds`` elapse."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ParseCancelledError(message="error classification cancelled")


class ReadWriteLock:
    """Many readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class ParserMetrics:
    """Snapshot of one parser's dispatch counters."""

    total_parsed: int = 0
    success_count: int = 0
    error_count: int = 0
    average_latency_ms: float = 0.0


@dataclass
class _Entry:
    name: str
    parser: ErrorParser
    priority: int
    order: int
    enabled: bool = True


@dataclass
class _MetricsCell:
    total_parsed: int = 0
    success_count: int = 0
    error_count: int = 0
    average_latency_ms: float = 0.0

    def record(self, *, success: bool, duration_ms: float) -> None:
        self.total_parsed += 1
        if success:
            self.success_count += 1
        else:
            self.error_count += 1
        self.average_latency_ms += (duration_ms - self.average_latency_ms) / self.total_parsed

    def snapshot(self) -> ParserMetrics:
        return ParserMetrics(
            total_parsed=self.total_parsed,
            success_count=self.success_count,
            error_count=self.error_count,
            average_latency_ms=self.average_latency_ms,
        )


@dataclass(frozen=True)
class _FactoryBinding:
    factory_name: str
    kind: str


@dataclass
class _Tables:
    entries: dict[str, _Entry] = field(default_factory=dict)
    plugins: dict[str, ParserPlugin] = field(default_factory=dict)
    factories: dict[str, ParserFactory] = field(default_factory=dict)
    bindings: dict[str, _FactoryBinding] = field(default_factory=dict)
    configurations: dict[str, dict[str, Any]] = field(default_factory=dict)
    health_checkers: dict[str, HealthChecker] = field(default_factory=dict)


class DistributedParserRegistry:
    """Name-keyed parser table with priority dispatch.

    ``include_builtin`` pre-registers the stock parsers listed in
    ``BUILTIN_PARSERS``.
    """

    def __init__(
        self,
        *,
        include_builtin: bool = True,
        metrics: ClassificationMetrics | None = None,
    ) -> None:
        self._lock = ReadWriteLock()
        self._tables = _Tables()
        self._next_order = 0
        self._metrics_lock = threading.Lock()
        self._metrics: dict[str, _MetricsCell] = {}
        self._telemetry = metrics
        if include_builtin:
            for name, (constructor, priority) in BUILTIN_PARSERS.items():
                self.register_parser(name, constructor(), priority)

    @classmethod
    def from_settings(
        cls,
        settings: RegistrySettings,
        *,
        telemetry: TelemetrySettings | None = None,
    ) -> DistributedParserRegistry:
        """Build a registry from the ``registry`` configuration subtree.

        Custom parsers are built through a ``CustomParserFactory`` registered
        as ``custom``. Per-name overrides then apply priorities and enable
        flags; naming an unknown parser raises ``ParserNotFoundError``.
        """
        metrics = None
        if telemetry is not None and telemetry.enabled:
            metrics = create_classification_metrics(telemetry)
        registry = cls(include_builtin=settings.include_builtin, metrics=metrics)
        registry.register_factory(CUSTOM_FACTORY_NAME, CustomParserFactory())
        for custom in settings.custom:
            registry.register_factory_parser(custom.name, custom.kind, custom.config, priority=custom.priority)
            if not custom.enabled:
                registry.disable_parser(custom.name)
        for name, override in settings.parsers.items():
            if override.priority is not None:
                registry.set_priority(name, override.priority)
            if override.enabled:
                registry.enable_parser(name)
            else:
                registry.disable_parser(name)
        return registry

    def register_parser(self, name: str, parser: ErrorParser, priority: int = 0) -> None:
        """Register or replace a native parser.

        Replacing keeps the original registration order but resets metrics
        and drops any plugin or factory binding.
        """
        if not name:
            raise ParserRegistrationError(message="parser name cannot be empty")
        if parser is None:
            raise ParserRegistrationError(message=f"parser {name} cannot be None", parser=name)
        with self._lock.write():
            self._install(name, parser, priority)
            self._tables.plugins.pop(name, None)
            self._tables.bindings.pop(name, None)
            self._tables.configurations.pop(name, None)
        self._log_change("register_parser", name, priority=priority)

    def register_plugin(self, plugin: ParserPlugin) -> None:
        """Validate the plugin's default configuration and register its parser."""
        if plugin is None:
            raise ParserRegistrationError(message="plugin cannot be None")
        name = plugin.name
        if not name:
            raise ParserRegistrationError(message="plugin name cannot be empty")
        config = plugin.default_config()
        plugin.validate_config(config)
        parser = plugin.create_parser(config)
        with self._lock.write():
            self._install(name, parser, PLUGIN_PRIORITY)
            self._tables.plugins[name] = plugin
            self._tables.bindings.pop(name, None)
            self._tables.configurations[name] = copy.deepcopy(config)
        self._log_change("register_plugin", name, priority=PLUGIN_PRIORITY)

    def register_factory(self, name: str, factory: ParserFactory) -> None:
        if not name:
            raise ParserRegistrationError(message="factory name cannot be empty")
        if factory is None:
            raise ParserRegistrationError(message=f"factory {name} cannot be None", parser=name)
        with self._lock.write():
            self._tables.factories[name] = factory
        self._log_change("register_factory", name)

    def register_factory_parser(
        self,
        name: str,
        kind: str,
        config: Mapping[str, Any],
        *,
        priority: int = PLUGIN_PRIORITY,
    ) -> None:
        """Build a parser of ``kind`` with the first factory supporting it.

        Raises ``UnsupportedParserTypeError`` when no registered factory builds
        ``kind``. The factory runs outside the table lock.
        """
        if not name:
            raise ParserRegistrationError(message="parser name cannot be empty")
        with self._lock.read():
            found = self._factory_for(kind)
        if found is None:
            raise UnsupportedParserTypeError(
                message=f"no factory supports parser kind {kind}",
                parser=name,
                kind=kind,
            )
        factory_name, factory = found
        parser = factory.create_parser(kind, config)
        with self._lock.write():
            self._install(name, parser, priority)
            self._tables.plugins.pop(name, None)
            self._tables.bindings[name] = _FactoryBinding(factory_name=factory_name, kind=kind)
            self._tables.configurations[name] = copy.deepcopy(dict(config))
        self._log_change("register_factory_parser", name, priority=priority)

    def configure_parser(self, name: str, config: Mapping[str, Any]) -> None:
        """Rebuild a plugin or factory backed parser from ``config``.

        A name that is not registered but is a kind some factory supports is
        built and registered enabled at the plugin priority. Plugin and factory
        code runs outside the table lock; concurrent reconfiguration of one
        name keeps the last install.
        """
        with self._lock.read():
            tables = self._tables
            plugin = tables.plugins.get(name)
            binding = tables.bindings.get(name)
            registered = name in tables.entries
            if binding is not None:
                found: tuple[str, ParserFactory] | None = (binding.factory_name, tables.factories[binding.factory_name])
            else:
                found = None if registered else self._factory_for(name)

        if plugin is not None:
            plugin.validate_config(config)
            parser = plugin.create_parser(config)
        elif registered and binding is None:
            raise ParserNotConfigurableError(message=f"parser {name} is not configurable", parser=name)
        elif found is None:
            raise ParserNotFoundError(message=f"parser {name} not found or not configurable", parser=name)
        else:
            factory_name, factory = found
            if binding is None:
                binding = _FactoryBinding(factory_name=factory_name, kind=name)
            parser = factory.create_parser(binding.kind, config)

        with self._lock.write():
            tables = self._tables
            if name in tables.entries:
                self._replace_parser(name, parser)
            else:
                self._install(name, parser, PLUGIN_PRIORITY)
            if plugin is not None:
                tables.plugins[name] = plugin
            elif binding is not None:
                tables.bindings[name] = binding
            tables.configurations[name] = copy.deepcopy(dict(config))
        self._log_change("configure_parser", name)

    def unregister_parser(self, name: str) -> None:
        with self._lock.write():
            self._require(name)
            tables = self._tables
            del tables.entries[name]
            for table in (tables.plugins, tables.bindings, tables.configurations, tables.health_checkers):
                table.pop(name, None)
        with self._metrics_lock:
            self._metrics.pop(name, None)
        self._log_change("unregister_parser", name)

    def enable_parser(self, name: str) -> None:
        with self._lock.write():
            self._require(name).enabled = True
        self._log_change("enable_parser", name)

    def disable_parser(self, name: str) -> None:
        with self._lock.write():
            self._require(name).enabled = False
        self._log_change("disable_parser", name)

    def set_priority(self, name: str, priority: int) -> None:
        with self._lock.write():
            self._require(name).priority = priority
        self._log_change("set_priority", name, priority=priority)

    def register_health_checker(self, name: str, checker: HealthChecker) -> None:
        """Attach a callable that raises when the parser's backing is unhealthy."""
        with self._lock.write():
            self._require(name)
            self._tables.health_checkers[name] = checker

    def parse(self, err: BaseException, *, token: CancellationToken | None = None) -> tuple[ParsedError, str]:
        """Classify ``err`` with the first enabled parser that recognises it.

        Returns ``(parsed, parser_name)``. Raises ``ValueError`` for ``None``,
        ``ParseCancelledError`` when ``token`` fires before a candidate,
        ``ParserExecutionError`` when a parser raises, and
        ``NoParserFoundError`` when nothing matches.
        """
        if err is None:
            raise ValueError("error cannot be None")
        with self._lock.read():
            candidates = [(entry.name, entry.parser) for entry in self._ordered() if entry.enabled]

        for name, parser in candidates:
            if token is not None and token.cancelled:
                self._emit(parser="", outcome=OUTCOME_CANCELLED, duration_ms=0.0)
                with log_context({fields.EVENT: fields.CLASSIFICATION_CANCELLED_EVENT, fields.PARSER: name}):
                    _LOGGER.info("Error classification cancelled")
                token.raise_if_cancelled()
            started = time.perf_counter()
            try:
                if not parser.can_parse(err):
                    continue
                parsed = parser.parse(err)
            except Exception as exc:
                duration_ms = _elapsed_ms(started)
                self._record(name, success=False, duration_ms=duration_ms)
                self._emit(parser=name, outcome=OUTCOME_FAILED, duration_ms=duration_ms)
                with log_context(
                    {
                        fields.EVENT: fields.CLASSIFICATION_FAILURE_EVENT,
                        fields.PARSER: name,
                        **error_fields(err),
                    }
                ):
                    _LOGGER.warning("Error parser raised during classification", exc_info=True)
                raise ParserExecutionError(
                    message=f"parser {name} failed: {exc}",
                    parser=name,
                    cause=exc,
                ) from exc

            duration_ms = _elapsed_ms(started)
            self._record(name, success=True, duration_ms=duration_ms)
            self._emit(parser=name, outcome=OUTCOME_MATCHED, duration_ms=duration_ms)
            with log_context(
                {
                    fields.EVENT: fields.CLASSIFICATION_EVENT,
                    fields.PARSER: name,
                    fields.ERROR_CODE: parsed.code,
                    fields.ERROR_TYPE: parsed.type.value,
                    fields.DURATION_MS: round(duration_ms, 3),
                }
            ):
                _LOGGER.debug("Error classified")
            return parsed, name

        self._emit(parser="", outcome=OUTCOME_MISS, duration_ms=0.0)
        with log_context(
            {
                fields.EVENT: fields.CLASSIFICATION_MISS_EVENT,
                **error_fields(err),
                fields.CANDIDATES: len(candidates),
            }
        ):
            _LOGGER.warning("No parser recognised error")
        raise NoParserFoundError(
            message=f"no parser found for error: {err}",
            candidates=len(candidates),
        )

    def get_metrics(self, name: str) -> ParserMetrics:
        with self._metrics_lock:
            cell = self._metrics.get(name)
            if cell is None:
                raise ParserNotFoundError(message=f"metrics not found for parser {name}", parser=name)
            return cell.snapshot()

    def health_check(self, name: str | None = None) -> dict[str, Exception | None]:
        """Run health checkers; each result is ``None`` or the raised exception.

        Naming a parser without a checker reports ``ParserNotFoundError``.
        """
        with self._lock.read():
            if name is not None:
                checker = self._tables.health_checkers.get(name)
                targets: dict[str, HealthChecker | None] = {name: checker}
            else:
                targets = dict(self._tables.health_checkers)

        results: dict[str, Exception | None] = {}
        for target, checker in targets.items():
            if checker is None:
                results[target] = ParserNotFoundError(message=f"no health checker for parser {target}", parser=target)
                continue
            try:
                checker()
            except Exception as exc:
                results[target] = exc
            else:
                results[target] = None
        return results

    def list_parsers(self) -> dict[str, bool]:
        """Return ``{name: enabled}`` in dispatch order."""
        with self._lock.read():
            return {entry.name: entry.enabled for entry in self._ordered()}

    def get_configuration(self, name: str) -> dict[str, Any]:
        with self._lock.read():
            config = self._tables.configurations.get(name)
            if config is None:
                raise ParserNotFoundError(message=f"configuration not found for parser {name}", parser=name)
            return copy.deepcopy(config)

    def get_priority(self, name: str) -> int:
        with self._lock.read():
            return self._require(name).priority

    def is_enabled(self, name: str) -> bool:
        with self._lock.read():
            return self._require(name).enabled

    def __contains__(self, name: object) -> bool:
        with self._lock.read():
            return name in self._tables.entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._tables.entries)

    def _install(self, name: str, parser: ErrorParser, priority: int) -> None:
        """Insert or replace an entry. Caller holds the write lock."""
        existing = self._tables.entries.get(name)
        if existing is None:
            order = self._next_order
            self._next_order += 1
        else:
            order = existing.order
        self._tables.entries[name] = _Entry(name=name, parser=parser, priority=priority, order=order)
        with self._metrics_lock:
            self._metrics[name] = _MetricsCell()

    def _replace_parser(self, name: str, parser: ErrorParser) -> None:
        """Swap the parser but keep priority, enabled flag and metrics."""
        self._tables.entries[name].parser = parser

    def _factory_for(self, kind: str) -> tuple[str, ParserFactory] | None:
        """Return the first factory supporting ``kind``. Caller holds a lock."""
        for factory_name, factory in self._tables.factories.items():
            if kind in factory.supported_types():
                return factory_name, factory
        return None

    def _require(self, name: str) -> _Entry:
        entry = self._tables.entries.get(name)
        if entry is None:
            raise ParserNotFoundError(message=f"parser {name} not found", parser=name)
        return entry

    def _ordered(self) -> list[_Entry]:
        return sorted(self._tables.entries.values(), key=lambda entry: (-entry.priority, entry.order))

    def _record(self, name: str, *, success: bool, duration_ms: float) -> None:
        with self._metrics_lock:
            cell = self._metrics.get(name)
            if cell is not None:
                cell.record(success=success, duration_ms=duration_ms)

    def _emit(self, *, parser: str, outcome: str, duration_ms: float) -> None:
        if self._telemetry is not None:
            self._telemetry.record(parser=parser, outcome=outcome, duration_ms=duration_ms)

    def _log_change(self, action: str, name: str, *, priority: int | None = None) -> None:
        context: dict[str, object] = {fields.EVENT: fields.REGISTRY_CHANGE_EVENT, fields.PARSER: name}
        if priority is not None:
            context[fields.PARSER_PRIORITY] = priority
        with log_context(context):
            _LOGGER.debug("Parser registry %s", action)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


_DEFAULT_REGISTRY: DistributedParserRegistry | None = None
_DEFAULT_LOCK = threading.Lock()


def get_default_registry(settings: FaultlineSettings | None = None) -> DistributedParserRegistry:
    """Return the lazily created process-wide registry.

    The first call builds it from ``settings`` (loaded from the environment
    and YAML config when omitted); later calls ignore ``settings``.
    """
    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        if _DEFAULT_REGISTRY is None:
            if settings is None:
                from ..config import load_settings

                settings = load_settings()
            _DEFAULT_REGISTRY = DistributedParserRegistry.from_settings(settings.registry, telemetry=settings.telemetry)
        return _DEFAULT_REGISTRY


def set_default_registry(registry: DistributedParserRegistry | None) -> None:
    """Replace the process-wide registry; ``None`` resets to lazy creation."""
    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        _DEFAULT_REGISTRY = registry
