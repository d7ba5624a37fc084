"""kioku: vocabulary mastery and spaced-repetition progress engine."""

from kioku.consts import VERSION

__version__ = VERSION
