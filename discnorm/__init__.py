"""
discnorm - Optical disc dump normalizer

Unwraps archived or transcoded disc dumps into bin/cue sets, compresses them
to CHD, and verifies the result against Redump-style DAT catalogs.
"""

__version__ = "0.3.0"
