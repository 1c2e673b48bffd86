"""CleanPlay - playback watcher with lyrics screening."""

__version__ = "0.1.0"
