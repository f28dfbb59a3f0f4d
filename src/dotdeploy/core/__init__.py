"""Core functionality for dotdeploy."""

from .backup import BackupVault
from .config import Config
from .deploy import DeploymentExecutor
from .engine import DeploymentEngine
from .environment import EnvironmentClassifier, classify
from .locator import ConfigLocator, locate
from .report import Report, summarize

__all__ = [
    "BackupVault",
    "Config",
    "ConfigLocator",
    "DeploymentEngine",
    "DeploymentExecutor",
    "EnvironmentClassifier",
    "Report",
    "classify",
    "locate",
    "summarize",
]
