"""Keyboard-driven controller for objects in a SIGVerse simulation."""
