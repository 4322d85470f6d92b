"""
inftrans Model Module
=====================

Everything defined before transcription: support labels, infinite domains,
independent parameters, derivative methods, measure data and the
:class:`InfiniteModel` that owns them.

Key components:
- SupportLabel / LabelKind: closed label taxonomy with selector semantics
- Domains: IntervalDomain, UniDistributionDomain, MultiDistributionDomain,
  CollectionDomain
- GenerativeInfo: how auxiliary supports are derived between supports
- DerivativeMethod: FiniteDifference, OrthogonalCollocation
- InfiniteModel / EntityRef: the model and typed references into it

Usage:
    from inftrans.model import InfiniteModel, IntervalDomain, PUBLIC

    model = InfiniteModel()
    t = model.add_parameter(IntervalDomain(0, 1), name='t', num_supports=5)
"""

from .labels import (
    LabelKind,
    SupportLabel,
    ALL,
    PUBLIC,
    INTERNAL,
    SAMPLE,
    USER_DEFINED,
    UNIFORM_GRID,
    MC_SAMPLE,
    WEIGHTED_SAMPLE,
    MIXTURE,
    MEASURE_BOUND,
    UNIQUE_MEASURE,
    COLLOCATION,
    NO_LABEL,
    generate_unique_label,
    label_matches,
)

from .domains import (
    InfiniteDomain,
    IntervalDomain,
    UniDistributionDomain,
    MultiDistributionDomain,
    CollectionDomain,
)

from .generative import (
    GenerativeInfo,
    NoGenerativeSupports,
    UniformGenerativeInfo,
)

from .derivative_methods import (
    DerivativeMethod,
    FDTechnique,
    FiniteDifference,
    OrthogonalCollocation,
    lobatto_nodes,
)

from .parameters import IndependentParameter, SupportMap
from .measures import DiscreteMeasureData, uniform_measure_data
from .infinite_model import InfiniteModel, EntityRef, IndexKind

__all__ = [
    # Labels
    'LabelKind',
    'SupportLabel',
    'ALL',
    'PUBLIC',
    'INTERNAL',
    'SAMPLE',
    'USER_DEFINED',
    'UNIFORM_GRID',
    'MC_SAMPLE',
    'WEIGHTED_SAMPLE',
    'MIXTURE',
    'MEASURE_BOUND',
    'UNIQUE_MEASURE',
    'COLLOCATION',
    'NO_LABEL',
    'generate_unique_label',
    'label_matches',
    # Domains
    'InfiniteDomain',
    'IntervalDomain',
    'UniDistributionDomain',
    'MultiDistributionDomain',
    'CollectionDomain',
    # Generative supports
    'GenerativeInfo',
    'NoGenerativeSupports',
    'UniformGenerativeInfo',
    # Derivative methods
    'DerivativeMethod',
    'FDTechnique',
    'FiniteDifference',
    'OrthogonalCollocation',
    'lobatto_nodes',
    # Parameters and measures
    'IndependentParameter',
    'SupportMap',
    'DiscreteMeasureData',
    'uniform_measure_data',
    # Model
    'InfiniteModel',
    'EntityRef',
    'IndexKind',
]
