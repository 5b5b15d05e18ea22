"""BotSkill - a versioned registry for SKILL.md skill packages."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("botskill")
except PackageNotFoundError:
    __version__ = "0.0.0"
