"""
Revenant: a declarative plugin manager for Neovim.

Plugins are declared with an exact commit; revenant makes the disk match and
records what it did in a lock file.
"""

__version__ = "0.1.0"
