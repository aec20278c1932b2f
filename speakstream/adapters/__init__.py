"""
Adapters - outer surfaces over SpeakStream.
"""

from speakstream.adapters.cli import main

__all__ = ["main"]
