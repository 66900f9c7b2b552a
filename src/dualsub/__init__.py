"""dualsub: cached, multi-provider dual subtitles with cue-timed auto-pause."""

__version__ = "0.1.0"
