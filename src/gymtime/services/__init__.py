"""Workout parsing, voice capture, storage, and statistics."""
