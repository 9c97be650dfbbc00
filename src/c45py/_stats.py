# -*- coding: utf-8 -*-
"""
c45py._stats
============

Numeric constants and small statistical helpers shared by the tree builder.

Everything that compares weights goes through the tolerant comparisons below
(``_eq``, ``_gr`` ...).  Instance weights become fractional as soon as missing
values are spread over several branches, so exact float comparisons would
make split acceptance depend on rounding noise.
"""

from __future__ import annotations
import math
import warnings

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
LOG2 = math.log(2)

# tolerance used by every weight comparison
SMALL = 1e-6

# consecutive numeric values closer than this are not a split boundary
SPLIT_VALUE_GAP = 1e-5

# minimum size of each side of a numeric split, relative to weight per class
MIN_SPLIT_FRACTION = 0.1
MAX_MIN_SPLIT = 25.0

# nominal attributes with at least this fraction of the training set size as
# values are "multi-valued" and kept out of the average gain
MULTI_VALUED_FRACTION = 0.3

AVERAGE_GAIN_SLACK = 1e-3
COLLAPSE_SLACK = 1e-3
PRUNE_SLACK = 0.1


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _isnan_scalar(v) -> bool:
    if v is None:
        return True
    try:
        return bool(math.isnan(v))
    except (TypeError, ValueError):
        return False

def _eq(a: float, b: float) -> bool:
    return (a - b < SMALL) and (b - a < SMALL)

def _gr(a: float, b: float) -> bool:
    return a - b > SMALL

def _gr_or_eq(a: float, b: float) -> bool:
    return b - a < SMALL

def _sm(a: float, b: float) -> bool:
    return b - a > SMALL

def _sm_or_eq(a: float, b: float) -> bool:
    return a - b < SMALL

def _log_func(num: float) -> float:
    """``num * log2(num)``, taken as 0 for (near) empty counts."""
    if num < 1e-6:
        return 0.0
    return num * math.log(num) / LOG2

def _norm_ppf(p: float) -> float:
    """Approximate inverse CDF of standard normal (Acklam's approximation)."""
    # clamp
    p = min(max(p, 1e-12), 1 - 1e-12)
    # coefficients
    a = [ -3.969683028665376e+01,  2.209460984245205e+02,
          -2.759285104469687e+02,  1.383577518672690e+02,
          -3.066479806614716e+01,  2.506628277459239e+00 ]
    b = [ -5.447609879822406e+01,  1.615858368580409e+02,
          -1.556989798598866e+02,  6.680131188771972e+01,
          -1.328068155288572e+01 ]
    c = [ -7.784894002430293e-03, -3.223964580411365e-01,
          -2.400758277161838e+00, -2.549732539343734e+00,
           4.374664141464968e+00,  2.938163982698783e+00 ]
    d = [ 7.784695709041462e-03,  3.224671290700398e-01,
          2.445134137142996e+00,  3.754408661907416e+00 ]
    plow  = 0.02425
    phigh = 1 - plow
    if p < plow:
        q = math.sqrt(-2*math.log(p))
        return (((((c[0]*q + c[1])*q + c[2])*q + c[3])*q + c[4])*q + c[5]) / \
               ((((d[0]*q + d[1])*q + d[2])*q + d[3])*q + 1)
    if phigh < p:
        q = math.sqrt(-2*math.log(1-p))
        return -(((((c[0]*q + c[1])*q + c[2])*q + c[3])*q + c[4])*q + c[5]) / \
                 ((((d[0]*q + d[1])*q + d[2])*q + d[3])*q + 1)
    q = p - 0.5
    r = q*q
    return (((((a[0]*r + a[1])*r + a[2])*r + a[3])*r + a[4])*r + a[5])*q / \
           (((((b[0]*r + b[1])*r + b[2])*r + b[3])*r + b[4])*r + 1)


def count_extra_error(n: float, e: float, confidence: float) -> float:
    """
    Pessimistic extra error for a leaf holding ``n`` (weighted) instances of
    which ``e`` are misclassified.

    The upper limit of a one-sided binomial confidence interval is
    approximated with the normal distribution (Wilson score interval with
    continuity correction).  Two regimes where the approximation breaks down
    are handled separately: fewer than one error (closed form from the
    binomial tail, interpolated up to ``e = 1``) and ``e`` within half an
    instance of ``n`` (linear).

    Parameters
    ----------
    n : float
        Total weight at the leaf.
    e : float
        Observed (weighted) errors at the leaf.
    confidence : float
        Confidence factor in (0, 0.5].  Smaller values prune more.

    Returns
    -------
    float
        Estimated errors to add to ``e``.  ``0.0`` when ``confidence`` is
        above 0.5, in which case a ``RuntimeWarning`` is emitted.
    """
    if confidence > 0.5:
        warnings.warn(
            f"Confidence factor {confidence} for pruning is too high; "
            "error estimate not modified.",
            RuntimeWarning,
        )
        return 0.0

    if e < 1:
        base = n * (1 - math.pow(confidence, 1 / n))
        if e == 0:
            return base
        return base + e * (count_extra_error(n, 1, confidence) - base)

    # continuity correction makes the interval meaningless close to n
    if e + 0.5 >= n:
        return max(n - e, 0.0)

    z = _norm_ppf(1 - confidence)
    f = (e + 0.5) / n
    r = (f + (z * z) / (2 * n) +
         z * math.sqrt((f / n) - (f * f / n) + (z * z / (4 * n * n)))) / \
        (1 + (z * z) / n)
    return (r * n) - e
