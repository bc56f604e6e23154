"""SYNCLYR - embed LRCLIB lyrics into local audio files."""

__version__ = "0.4.0"
