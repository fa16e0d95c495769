"""Playtree playback engine: playheads walking a graph of playnodes under per-scope play limits."""

__version__ = "0.1.0"
