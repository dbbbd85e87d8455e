"""ideasynth: retrieval-grounded hackathon idea synthesis."""

__version__ = "0.1.0"
