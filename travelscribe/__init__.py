"""
TravelScribe core - voice travel notes, transcription and trip storage.
"""

__version__ = "0.1.0"
