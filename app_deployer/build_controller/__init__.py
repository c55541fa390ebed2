"""Build controller module.

This controller keeps git BuildConfigs pointed at the desired version and
starts a new Build for every BuildConfig it moves.
"""

from .controller import BuildSynchronizer, new_build

__all__ = ["BuildSynchronizer", "new_build"]
