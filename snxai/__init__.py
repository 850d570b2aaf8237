"""SNXai assistant service: conversational tool orchestration for the student community platform."""

__version__ = "1.0.0"
