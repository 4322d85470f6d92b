"""Support generation, storage and derivative evaluation.

Key Components
--------------
generators : Module
    Registry mapping (domain kind, method label) to a support generator.
store : Module
    Set / add / delete / query supports of a parameter, plus the lazy
    generative-support engine.
derivatives : Module
    Finite difference and collocation evaluation equations.
"""

from .generators import (
    generate_support_values,
    generate_supports,
    register_support_generator,
    get_support_generator,
    list_registered_generators,
    is_generator_registered,
)

from .store import (
    check_supports,
    set_supports,
    add_supports,
    delete_supports,
    supports,
    num_supports,
    has_supports,
    fill_in_supports,
    generate_and_add_supports,
    add_generative_supports,
    set_generative_support_info,
    set_derivative_method,
    significant_digits,
    has_internal_supports,
    has_generative_supports,
    generative_support_info,
)

from .derivatives import (
    EvaluationEquation,
    evaluate_derivative,
    evaluate_all_derivatives,
    lagrange_derivative_matrix,
)

__all__ = [
    'generate_support_values',
    'generate_supports',
    'register_support_generator',
    'get_support_generator',
    'list_registered_generators',
    'is_generator_registered',
    'check_supports',
    'set_supports',
    'add_supports',
    'delete_supports',
    'supports',
    'num_supports',
    'has_supports',
    'fill_in_supports',
    'generate_and_add_supports',
    'add_generative_supports',
    'set_generative_support_info',
    'set_derivative_method',
    'significant_digits',
    'has_internal_supports',
    'has_generative_supports',
    'generative_support_info',
    'EvaluationEquation',
    'evaluate_derivative',
    'evaluate_all_derivatives',
    'lagrange_derivative_matrix',
]
