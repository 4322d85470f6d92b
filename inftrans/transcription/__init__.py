"""Transcription of an InfiniteModel into a finite model.

Usage:
    from inftrans.transcription import build_transcription_model, transcription_variable

    build_transcription_model(model)
    transcription_variable(x)
"""

from .finite_model import FiniteModel, FiniteVariable, FiniteConstraint, AffineExpression
from .data import (
    TranscriptionData,
    TranscriptionEntry,
    TranscriptionModel,
    ReducedVariable,
    register_query_handler,
    transcription_model,
    transcription_variable,
    variable_supports,
    transcription_measure,
    measure_supports,
    transcription_constraint,
    constraint_supports,
    lookup_by_support,
    parameter_supports,
    internal_reduced_variable,
    reduced_variable_refs,
)
from .build import build_transcription_model

__all__ = [
    'FiniteModel',
    'FiniteVariable',
    'FiniteConstraint',
    'AffineExpression',
    'TranscriptionData',
    'TranscriptionEntry',
    'TranscriptionModel',
    'ReducedVariable',
    'register_query_handler',
    'transcription_model',
    'transcription_variable',
    'variable_supports',
    'transcription_measure',
    'measure_supports',
    'transcription_constraint',
    'constraint_supports',
    'lookup_by_support',
    'parameter_supports',
    'internal_reduced_variable',
    'reduced_variable_refs',
    'build_transcription_model',
]
