"""Distance between two empirical distributions."""

from scipy import stats

from csb.distributions.types import Distribution


def ks_distance(a: Distribution, b: Distribution) -> float:
    """Two-sample Kolmogorov-Smirnov statistic between two histograms.

    The statistic is the largest gap between the empirical CDFs, so it is
    symmetric, lies in [0, 1] and is 0 exactly when the distributions are
    identical. Two empty histograms are identical (0.0); an empty histogram
    against a non-empty one is maximally different (1.0).
    """
    if a.is_empty and b.is_empty:
        return 0.0
    if a.is_empty or b.is_empty:
        return 1.0
    result = stats.ks_2samp(a.as_samples(), b.as_samples())
    return float(result.statistic)
