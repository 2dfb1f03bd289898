"""
Configuration sections.

Importing this package registers every config class.
"""

from skillflow.config.base import BaseConfig, get_config, list_configs, register_config, reset_configs
from skillflow.config.skillflow_config import SkillFlowConfig, get_skillflow_config

__all__ = [
    "BaseConfig",
    "get_config",
    "list_configs",
    "register_config",
    "reset_configs",
    "SkillFlowConfig",
    "get_skillflow_config",
]
