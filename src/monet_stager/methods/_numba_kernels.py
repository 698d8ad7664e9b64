"""
Numba-optimized kernels for separable multilinear interpolation.

Weights are computed once per axis (bracketing index plus fractional offset)
and applied to every frame. Corner terms whose weight is exactly zero are
skipped, so a site that coincides with a source node returns the node value
unchanged.
"""

import numpy as np
from numba import jit, prange


@jit(nopython=True, nogil=True, parallel=True)
def compute_axis_weights(
    coord,  # (n,) strictly increasing source coordinate
    targets,  # (m,) destination coordinates along the same axis
    clamp,  # hold boundary values outside the source range
):
    """
    Locate each target within a monotonic coordinate vector.

    Args:
        coord: Strictly increasing source coordinate
        targets: Destination coordinates
        clamp: If False, targets outside [coord[0], coord[-1]] are marked invalid

    Returns:
        lower: Index of the lower bracketing node for each target
        frac: Fractional distance from the lower node towards the upper node
        valid: Boolean mask of targets that receive a value
    """
    n = coord.shape[0]
    m = targets.shape[0]

    lower = np.zeros(m, dtype=np.int64)
    frac = np.zeros(m, dtype=np.float64)
    valid = np.ones(m, dtype=np.bool_)

    for i in prange(m):
        x = targets[i]

        if np.isnan(x):
            valid[i] = False
            continue

        # A singleton axis is constant everywhere
        if n == 1:
            continue

        if x <= coord[0]:
            lower[i] = 0
            frac[i] = 0.0
            if x < coord[0] and not clamp:
                valid[i] = False
        elif x >= coord[n - 1]:
            lower[i] = n - 2
            frac[i] = 1.0
            if x > coord[n - 1] and not clamp:
                valid[i] = False
        else:
            # Binary search for coord[lo] <= x < coord[lo + 1]
            lo = 0
            hi = n - 1
            while hi - lo > 1:
                mid = (lo + hi) // 2
                if coord[mid] <= x:
                    lo = mid
                else:
                    hi = mid
            lower[i] = lo
            frac[i] = (x - coord[lo]) / (coord[lo + 1] - coord[lo])

    return lower, frac, valid


@jit(nopython=True, nogil=True, parallel=True)
def apply_weights_1d(
    values,  # (n, n_params)
    lower,  # (m,)
    frac,  # (m,)
    valid,  # (m,)
):
    """
    Apply precomputed 1-D weights to a stack of profiles.

    Returns:
        Interpolated data (m, n_params)
    """
    n = values.shape[0]
    n_params = values.shape[1]
    m = lower.shape[0]

    result = np.full((m, n_params), np.nan, dtype=values.dtype)

    for i in prange(m):
        if not valid[i]:
            continue

        j0 = lower[i]
        j1 = min(j0 + 1, n - 1)
        f = frac[i]

        for p in range(n_params):
            acc = 0.0
            if f != 1.0:
                acc += (1.0 - f) * values[j0, p]
            if f != 0.0:
                acc += f * values[j1, p]
            result[i, p] = acc

    return result


@jit(nopython=True, nogil=True, parallel=True)
def apply_weights_2d(
    values,  # (na, nb, n_params)
    lower_a,
    frac_a,
    lower_b,
    frac_b,
    valid,  # (m,) combined validity of both axes
):
    """
    Apply precomputed bilinear weights; the two weight sets describe paired sites.

    Returns:
        Interpolated data (m, n_params)
    """
    na = values.shape[0]
    nb = values.shape[1]
    n_params = values.shape[2]
    m = lower_a.shape[0]

    result = np.full((m, n_params), np.nan, dtype=values.dtype)

    for i in prange(m):
        if not valid[i]:
            continue

        ia0 = lower_a[i]
        ib0 = lower_b[i]
        ia = (ia0, min(ia0 + 1, na - 1))
        ib = (ib0, min(ib0 + 1, nb - 1))
        wa = (1.0 - frac_a[i], frac_a[i])
        wb = (1.0 - frac_b[i], frac_b[i])

        for p in range(n_params):
            acc = 0.0
            for da in range(2):
                if wa[da] == 0.0:
                    continue
                for db in range(2):
                    if wb[db] == 0.0:
                        continue
                    acc += wa[da] * wb[db] * values[ia[da], ib[db], p]
            result[i, p] = acc

    return result


@jit(nopython=True, nogil=True, parallel=True)
def apply_weights_3d(
    values,  # (na, nb, nc, n_params)
    lower_a,
    frac_a,
    lower_b,
    frac_b,
    lower_c,
    frac_c,
    valid,  # (m,) combined validity of all three axes
):
    """
    Apply precomputed trilinear weights; the three weight sets describe paired sites.

    Returns:
        Interpolated data (m, n_params)
    """
    na = values.shape[0]
    nb = values.shape[1]
    nc = values.shape[2]
    n_params = values.shape[3]
    m = lower_a.shape[0]

    result = np.full((m, n_params), np.nan, dtype=values.dtype)

    for i in prange(m):
        if not valid[i]:
            continue

        ia0 = lower_a[i]
        ib0 = lower_b[i]
        ic0 = lower_c[i]
        ia = (ia0, min(ia0 + 1, na - 1))
        ib = (ib0, min(ib0 + 1, nb - 1))
        ic = (ic0, min(ic0 + 1, nc - 1))
        wa = (1.0 - frac_a[i], frac_a[i])
        wb = (1.0 - frac_b[i], frac_b[i])
        wc = (1.0 - frac_c[i], frac_c[i])

        for p in range(n_params):
            acc = 0.0
            for da in range(2):
                if wa[da] == 0.0:
                    continue
                for db in range(2):
                    if wb[db] == 0.0:
                        continue
                    for dc in range(2):
                        if wc[dc] == 0.0:
                            continue
                        acc += wa[da] * wb[db] * wc[dc] * values[ia[da], ib[db], ic[dc], p]
            result[i, p] = acc

    return result
