"""
Config base class and registry.

Concrete configs are ``@dataclass`` subclasses of ``BaseConfig``
decorated with ``@register_config``.
"""

from __future__ import annotations

from logging import getLogger
from typing import Dict, List, Optional, Type, TypeVar

logger = getLogger(__name__)

C = TypeVar("C", bound="BaseConfig")


class BaseConfig:
    """Base for dataclass-backed configuration sections."""

    @classmethod
    def get_default_instance(cls: Type[C]) -> C:
        return cls()

    @classmethod
    def get_config_name(cls) -> str:
        raise NotImplementedError

    @classmethod
    def get_display_name(cls) -> str:
        return cls.get_config_name()

    @classmethod
    def get_description(cls) -> str:
        return ""


_registry: Dict[str, Type[BaseConfig]] = {}
_instances: Dict[str, BaseConfig] = {}


def register_config(cls: Type[C]) -> Type[C]:
    """Class decorator that adds a config class to the registry."""
    _registry[cls.get_config_name()] = cls
    return cls


def list_configs() -> List[str]:
    return sorted(_registry)


def get_config(name: str) -> BaseConfig:
    """Return the cached config instance for ``name``.

    The instance is built from the environment on first access.
    """
    if name not in _instances:
        cls = _registry.get(name)
        if cls is None:
            raise KeyError(f"Unknown config section: {name}")
        _instances[name] = cls.get_default_instance()
        logger.info(f"Config '{name}' loaded")
    return _instances[name]


def reset_configs(name: Optional[str] = None) -> None:
    """Drop cached instances so the next access re-reads the environment."""
    if name is None:
        _instances.clear()
    else:
        _instances.pop(name, None)
