"""inftrans: support management and transcription for infinite-dimensional models.

Decision variables, measures and constraints indexed by continuous
parameters (time, space, uncertainty) are evaluated at a discrete set of
supports and expanded into a finite model that a solver can consume.

Usage:
    from inftrans.model import InfiniteModel, IntervalDomain
    from inftrans.supports import fill_in_supports
    from inftrans.transcription import build_transcription_model
"""

__version__ = "0.1.0"
