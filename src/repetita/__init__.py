"""Repetita: SM-2 spaced-repetition scheduling for flashcard study sessions."""

from repetita.consts import VERSION

__version__ = VERSION
