"""Configurable filter chains: filter plugins, named filter groups and a group manager."""

from __future__ import annotations

import abc
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Configuration keys of a single filter entry.
FILTER_TYPE_KEY = "type"
FILTER_NAME_KEY = "name"
FILTER_CONFIG_KEY = "config"

# Configuration keys of a filter group.
GROUP_NAME_KEY = "group_name"
CONTINUE_ON_FAILURE_KEY = "continue_on_failure"
VERBOSITY_ON_KEY = "verbosity_on"
FILTERS_KEY = "filters"

# Configuration keys of a filter manager.
FILTER_GROUPS_KEY = "filter_groups"

DEFAULT_GROUP_NAME = "Default"


class FilterError(Exception):
    """Raised when a filter, group or manager cannot be configured or applied."""


class FilterBase(abc.ABC):
    """A filter that is configured from a mapping and turns input data into output data."""

    @abc.abstractmethod
    def configure(self, config: Mapping[str, Any]) -> None:
        """Load the filter's parameters; raise FilterError when they are invalid."""

    @abc.abstractmethod
    def filter(self, data: Any) -> Any:
        """Return the filtered data; raise FilterError when filtering fails."""

    def name(self) -> str:
        """Return the filter's type name."""
        return filter_type_name(type(self))


class MeshFilterBase(FilterBase):
    """Base class of filters that operate on polygon meshes."""


class CloudFilterBase(FilterBase):
    """Base class of filters that operate on point clouds."""


_REGISTRY: dict[str, type[FilterBase]] = {}


def filter_type_name(cls: type) -> str:
    """Return the fully qualified name under which a filter class is known."""
    return f"{cls.__module__}.{cls.__qualname__}"


def register_filter(cls: type[FilterBase]) -> type[FilterBase]:
    """Make a filter class available to filter groups; usable as a class decorator."""
    if not (isinstance(cls, type) and issubclass(cls, FilterBase)):
        raise TypeError(f"{cls!r} is not a FilterBase subclass")
    type_name = filter_type_name(cls)
    existing = _REGISTRY.get(type_name)
    if existing is not None and existing is not cls:
        raise ValueError(f"a different filter is already registered as '{type_name}'")
    _REGISTRY[type_name] = cls
    return cls


def _declared_classes(base_class: type[FilterBase]) -> list[str]:
    return sorted(name for name, cls in _REGISTRY.items() if issubclass(cls, base_class))


@dataclass
class _FilterInfo:
    type_name: str
    name: str
    config: Mapping[str, Any] = field(default_factory=dict)


def _load_filter_infos(filter_configs: Any) -> list[_FilterInfo]:
    if isinstance(filter_configs, (str, bytes)) or not isinstance(filter_configs, Sequence):
        raise FilterError("The filter group configuration is not an array of filters")
    infos = []
    for entry in filter_configs:
        if not isinstance(entry, Mapping):
            raise FilterError("Each filter entry must be a mapping")
        type_name = entry.get(FILTER_TYPE_KEY)
        name = entry.get(FILTER_NAME_KEY)
        if not isinstance(type_name, str) or not isinstance(name, str):
            raise FilterError(
                f"Each filter entry needs string '{FILTER_TYPE_KEY}' and '{FILTER_NAME_KEY}' fields"
            )
        config = entry.get(FILTER_CONFIG_KEY)
        infos.append(_FilterInfo(type_name, name, {} if config is None else config))
    if not infos:
        raise FilterError("Failed to load filters")
    return infos


class FilterGroup:
    """An ordered chain of named filters that all derive from one base class."""

    def __init__(self, base_class: type[FilterBase] = FilterBase) -> None:
        if not (isinstance(base_class, type) and issubclass(base_class, FilterBase)):
            raise TypeError(f"{base_class!r} is not a FilterBase subclass")
        self.base_class = base_class
        self.continue_on_failure = False
        self.verbosity_on = False
        self.filters_loaded: list[str] = []
        self._filters: dict[str, FilterBase] = {}
        listing = "".join(f"\n\t\t{name}" for name in _declared_classes(base_class))
        logger.info(
            "Available plugins for base class '%s' :%s", filter_type_name(base_class), listing
        )

    def init(self, config: Mapping[str, Any]) -> None:
        """Load the group's options and instantiate and configure its filters."""
        if not isinstance(config, Mapping):
            raise FilterError("The filter group configuration must be a mapping")
        for key in (CONTINUE_ON_FAILURE_KEY, VERBOSITY_ON_KEY, FILTERS_KEY):
            if key not in config:
                raise FilterError(
                    f"The '{key}' field was not found in the {type(self).__name__} config"
                )

        continue_on_failure = config[CONTINUE_ON_FAILURE_KEY]
        verbosity_on = config[VERBOSITY_ON_KEY]
        if isinstance(continue_on_failure, bool) and isinstance(verbosity_on, bool):
            self.continue_on_failure = continue_on_failure
            self.verbosity_on = verbosity_on
        else:
            logger.warning(
                "Failed to parse '%s' parameter: expected booleans", CONTINUE_ON_FAILURE_KEY
            )
            self.continue_on_failure = False

        infos = _load_filter_infos(config[FILTERS_KEY])
        filters = dict(self._filters)
        loaded = list(self.filters_loaded)
        for info in infos:
            if info.name in filters:
                raise FilterError(f"The plugin '{info.name}' has already been added")
            cls = _REGISTRY.get(info.type_name)
            if cls is None or not issubclass(cls, self.base_class):
                raise FilterError(f"Plugin '{info.name}' of type '{info.type_name}' could not be created")
            plugin = cls()
            try:
                plugin.configure(info.config)
            except (FilterError, KeyError, TypeError, ValueError) as exc:
                raise FilterError(f"Plugin '{info.name}' failed to load configuration: {exc}") from exc
            filters[info.name] = plugin
            loaded.append(info.name)
        self._filters = filters
        self.filters_loaded = loaded

    def apply_filters(self, data: Any, filters: Sequence[str] | None = None) -> Any:
        """Run the named filters in order (all loaded filters when none are named)."""
        requested = list(filters or [])
        selected = requested
        if not selected:
            logger.warning(
                "%s received empty list of filters, using all filters loaded", type(self).__name__
            )
            selected = list(self.filters_loaded)

        for name in requested:
            if name not in self._filters:
                message = f"The filter {name} was not found"
                logger.error(message)
                raise FilterError(message)

        current = data
        succeeded = False
        last_error: FilterError | None = None
        for name in selected:
            start = time.perf_counter()
            try:
                result = self._filters[name].filter(current)
            except FilterError as exc:
                last_error = FilterError(f"The filter {name} failed: {exc}")
                last_error.__cause__ = exc
                result = None
            if self.verbosity_on:
                logger.info("Filter '%s' took %f seconds", name, time.perf_counter() - start)
            if last_error is not None and result is None:
                logger.error("%s", last_error)
                if not self.continue_on_failure:
                    raise last_error
                continue
            current = result
            succeeded = True

        if not succeeded:
            raise last_error or FilterError("No filters were applied")
        return current


class FilterManager:
    """Holds several named filter groups built from one configuration."""

    def __init__(self, base_class: type[FilterBase] = FilterBase) -> None:
        if not (isinstance(base_class, type) and issubclass(base_class, FilterBase)):
            raise TypeError(f"{base_class!r} is not a FilterBase subclass")
        self.base_class = base_class
        self._groups: dict[str, FilterGroup] = {}

    def init(self, config: Mapping[str, Any]) -> None:
        """Create and initialise every group listed under ``filter_groups``."""
        manager_name = type(self).__name__
        if not isinstance(config, Mapping) or FILTER_GROUPS_KEY not in config:
            raise FilterError(
                f"The '{FILTER_GROUPS_KEY}' field was not found, {manager_name} failed to load configuration"
            )
        groups_config = config[FILTER_GROUPS_KEY]
        if isinstance(groups_config, (str, bytes)) or not isinstance(groups_config, Sequence):
            raise FilterError(
                f"The '{FILTER_GROUPS_KEY}' field is not an array, {manager_name} failed to load configuration"
            )

        groups = dict(self._groups)
        for group_config in groups_config:
            if not isinstance(group_config, Mapping) or not isinstance(
                group_config.get(GROUP_NAME_KEY), str
            ):
                raise FilterError(
                    f"Failure while loading {manager_name} configuration: "
                    f"each group needs a string '{GROUP_NAME_KEY}'"
                )
            group_name = group_config[GROUP_NAME_KEY]
            if group_name in groups:
                raise FilterError(f"The filter group '{group_name}' already exists in {manager_name}")
            group = FilterGroup(self.base_class)
            try:
                group.init(group_config)
            except FilterError as exc:
                raise FilterError(f"Failed to initialize filter group '{group_name}': {exc}") from exc
            groups[group_name] = group
            logger.info("%s loaded filter group '%s'", manager_name, group_name)
        self._groups = groups

    def get_filter_group(self, name: str = "") -> FilterGroup:
        """Return the named group; an empty name means the default group."""
        key = name or DEFAULT_GROUP_NAME
        try:
            return self._groups[key]
        except KeyError:
            message = f"Filter chain '{key}' was not found"
            logger.error(message)
            raise FilterError(message) from None


class MeshFilterManager(FilterManager):
    """A filter manager whose groups hold mesh filters."""

    def __init__(self) -> None:
        super().__init__(MeshFilterBase)