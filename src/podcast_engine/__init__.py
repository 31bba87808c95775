"""AI Podcast Engine - researched, differentiated, voiced podcast episodes."""

__version__ = "0.1.0"
