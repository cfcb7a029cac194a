# tubescribe/__init__.py
"""tubescribe: batch transcription of remote videos."""

__version__ = "0.1.0"
