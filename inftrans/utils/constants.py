"""Default constants for support generation and transcription."""

DEFAULT_NUM_SUPPORTS = 10
"""Number of supports generated when no count is requested"""

DEFAULT_SIG_DIGITS = 12
"""Significant digits that support values are rounded to"""

SUPPORT_NAME_FORMAT = "{name}(support: {index})"
"""Finite counterpart name when verbose naming is off (index is 1-based)"""

ENV_PREFIX = "INFTRANS_"
"""Prefix shared by every environment variable read by inftrans"""
