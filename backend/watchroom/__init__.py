"""Watchroom: shared video rooms with a vote-ordered playlist and a playback cursor."""

__version__ = "1.0.0"
