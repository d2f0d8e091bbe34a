"""
Per-variant meta-analysis of allelic imbalance across samples.

Each sample contributes an exact binomial test of its ref count against
p=0.5, converted to a signed Z-score; the Z-scores are combined with
Stouffer's method. All sums are exact (integer arithmetic or math.fsum) so
results do not depend on the order samples were loaded in.
"""

# Default Python package Imports
import math
from typing import Sequence, Tuple

# External package imports
import numpy as np
from scipy.stats import binomtest, norm


# Smallest p-value converted to a Z-score, keeps norm.isf finite
MIN_PVAL = np.finfo(np.float64).tiny


def count_pearson_r(ref_counts: Sequence[int], alt_counts: Sequence[int]) -> float:
    """
    Pearson correlation between ref and alt counts across samples.

    Computed from exact integer sums. Returns NaN when there are fewer than
    two samples or either vector is constant.

    :param ref_counts: Reference allele counts, one per sample.
    :param alt_counts: Alternate allele counts, one per sample.
    :return: Pearson correlation coefficient.
    :rtype: float
    """
    n = len(ref_counts)
    if n != len(alt_counts):
        raise ValueError("ref and alt count vectors differ in length")
    if n < 2:
        return math.nan

    sum_x = sum(int(x) for x in ref_counts)
    sum_y = sum(int(y) for y in alt_counts)
    sum_xx = sum(int(x) * int(x) for x in ref_counts)
    sum_yy = sum(int(y) * int(y) for y in alt_counts)
    sum_xy = sum(int(x) * int(y) for x, y in zip(ref_counts, alt_counts))

    cov = n * sum_xy - sum_x * sum_y
    var_x = n * sum_xx - sum_x * sum_x
    var_y = n * sum_yy - sum_y * sum_y

    if var_x == 0 or var_y == 0:
        return math.nan

    r = cov / (math.sqrt(var_x) * math.sqrt(var_y))
    return max(-1.0, min(1.0, r))


def sample_zscore(ref_count: int, alt_count: int) -> float:
    """
    Signed Z-score of allelic imbalance for one sample.

    The two-sided binomial p-value of ``ref_count`` out of ``ref + alt``
    reads under p=0.5 is converted with the inverse normal survival
    function. Positive when ref is over-represented, negative when alt is.

    :param ref_count: Reads supporting the reference allele.
    :param alt_count: Reads supporting the alternate allele.
    :return: Z-score, 0.0 for balanced or uncovered samples.
    """
    total = ref_count + alt_count
    if total == 0 or ref_count == alt_count:
        return 0.0

    pval = binomtest(ref_count, total, p=0.5, alternative="two-sided").pvalue
    pval = min(1.0, max(pval, MIN_PVAL))

    z = float(norm.isf(pval / 2))
    return z if ref_count > alt_count else -z


def meta_zscore(ref_counts: Sequence[int], alt_counts: Sequence[int]) -> Tuple[float, float]:
    """
    Stouffer-combined Z-score and its two-sided P-value.

    :param ref_counts: Reference allele counts, one per sample.
    :param alt_counts: Alternate allele counts, one per sample.
    :return: ``(meta_z, meta_p)``; ``(0.0, 1.0)`` without samples.
    """
    k = len(ref_counts)
    if k != len(alt_counts):
        raise ValueError("ref and alt count vectors differ in length")
    if k == 0:
        return 0.0, 1.0

    zscores = [sample_zscore(int(ref), int(alt)) for ref, alt in zip(ref_counts, alt_counts)]
    meta_z = math.fsum(zscores) / math.sqrt(k)
    meta_p = float(2 * norm.sf(abs(meta_z)))

    return meta_z, min(1.0, meta_p)
