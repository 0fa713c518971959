"""Harmonist core: settings, logging and audio I/O."""
