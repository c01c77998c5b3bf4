"""termlevel: spaced-repetition term drills graded by a language model."""

from termlevel.consts import VERSION

__version__ = VERSION
