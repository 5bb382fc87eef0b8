"""Filesystem, logging and audio helpers."""
