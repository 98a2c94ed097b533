"""Hager-Zhang line search and its step-size helpers.

Independent implementation of the line search from

    W. W. Hager and H. Zhang (2006) Algorithm 851: CG_DESCENT, a conjugate
    gradient method with guaranteed descent. ACM Transactions on
    Mathematical Software 32: 113-137.

Stage names in comments ("B0", "S1", "U3", "I1") refer to that paper.

Departures from the paper:

* Wolfe conditions are only tested on steps produced by quadratic or
  secant interpolation, never on bisection or expansion steps.
* In stage I2 the trial step is expanded by ``psi2`` only when the
  convexity test fails, not when the value test fails, so the search does
  not move further uphill once it is above ``phi(0)``.
* Non-finite values are treated as points outside the feasible region.
* ``alphamax`` caps every evaluated step. It should be the largest step
  for which the objective is known to be finite.
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple

import numpy as np

from core.exceptions import LineSearchError

logger = logging.getLogger("cg_descent")

DEFAULT_DELTA = 0.1
DEFAULT_SIGMA = 0.9
ITERFINITEMAX = math.ceil(-math.log2(np.finfo(float).eps))


class LineSearchResults:
    """Ordered (step, value, slope) samples gathered during one line search."""

    def __init__(self) -> None:
        self.alpha: list[float] = []
        self.value: list[float] = []
        self.slope: list[float] = []
        self.nfailures = 0

    def clear(self) -> None:
        self.alpha.clear()
        self.value.clear()
        self.slope.clear()
        self.nfailures = 0

    def push(self, alpha: float, value: float, slope: float) -> None:
        self.alpha.append(float(alpha))
        self.value.append(float(value))
        self.slope.append(float(slope))

    def __len__(self) -> int:
        return len(self.alpha)

    def __getitem__(self, i: int) -> tuple[float, float, float]:
        return self.alpha[i], self.value[i], self.slope[i]

    def __iter__(self):
        return zip(self.alpha, self.value, self.slope)

    def __repr__(self) -> str:  # pragma: no cover - simple utility
        return f"{self.__class__.__name__}(n={len(self)}, nfailures={self.nfailures})"


class LineSearchOutcome(NamedTuple):
    alpha: float
    f_calls: int
    g_calls: int
    converged: bool = True


class _ExteriorRegion(Exception):
    """A trial step inside the bracket could not be moved to a finite point."""


def alphainit(alpha, x, gr, f_x, psi0=0.01):
    """Return a first trial step scaled to the problem (HZ, stage I0).

    With a finite ``alpha`` the step is ``min(1, alpha) * (1 + |f|) / ||g||``
    capped at ``alpha``, so far from the optimum it follows the scale of the
    objective and near it saturates to ``alpha``. A NaN ``alpha`` falls back
    to ``psi0 * max|x| / max|g|``.
    """
    gr = np.asarray(gr, dtype=float)
    if math.isnan(alpha):
        alpha = 1.0
        gr_max = float(np.max(np.abs(gr))) if gr.size else 0.0
        if gr_max != 0.0 and math.isfinite(gr_max):
            x_max = float(np.max(np.abs(x))) if np.size(x) else 0.0
            if x_max != 0.0:
                alpha = psi0 * x_max / gr_max
            elif f_x != 0.0:
                alpha = psi0 * abs(f_x) / float(np.linalg.norm(gr))
        return alpha

    gnorm = float(np.linalg.norm(gr))
    if gnorm == 0.0 or not math.isfinite(gnorm) or not math.isfinite(f_x):
        return alpha
    scaled = min(1.0, alpha) * (1.0 + abs(f_x)) / gnorm
    return min(alpha, scaled)


def linefunc(df, x, s, alpha, xtmp, g, calc_grad):
    """Evaluate ``phi(alpha) = f(x + alpha*s)`` and optionally ``phi'(alpha)``."""
    np.multiply(s, alpha, out=xtmp)
    xtmp += x
    if calc_grad:
        val = df.value_gradient(xtmp, g)
        if math.isfinite(val):
            return val, float(np.dot(g, s))
        return val, math.nan
    return df.value(xtmp), math.nan


def satisfies_wolfe(c, phic, dphic, phi0, dphi0, philim, delta, sigma):
    """Wolfe or approximate Wolfe conditions (HZ, eqs. 22-23)."""
    wolfe1 = delta * dphi0 >= (phic - phi0) / c and dphic >= sigma * dphi0
    wolfe2 = (2 * delta - 1) * dphi0 >= dphic >= sigma * dphi0 and phic <= philim
    return wolfe1 or wolfe2


def secant(a, b, dphia, dphib):
    denom = dphib - dphia
    if denom == 0:
        return math.nan
    return (a * dphib - b * dphia) / denom


def _secant_at(lsr, ia, ib):
    return secant(lsr.alpha[ia], lsr.alpha[ib], lsr.slope[ia], lsr.slope[ib])


def _finite_point(df, x, s, xtmp, g, lsr, a, c, iterfinitemax):
    """Evaluate at ``c``, retreating toward ``a`` while the result is non-finite."""
    phic, dphic = linefunc(df, x, s, c, xtmp, g, True)
    calls = 1
    iterfinite = 1
    while (
        not (math.isfinite(phic) and math.isfinite(dphic))
        and c > np.nextafter(a, math.inf)
        and iterfinite < iterfinitemax
    ):
        lsr.nfailures += 1
        iterfinite += 1
        c = (a + c) / 2
        phic, dphic = linefunc(df, x, s, c, xtmp, g, True)
        calls += 1
    if not (math.isfinite(phic) and math.isfinite(dphic)):
        raise _ExteriorRegion(c)
    return c, phic, dphic, calls


def _best_alpha(lsr):
    """Step with the lowest finite value recorded so far."""
    best = 0
    for i, val in enumerate(lsr.value):
        if math.isfinite(val) and val < lsr.value[best]:
            best = i
    return lsr.alpha[best]


def alphatry(
    alpha,
    df,
    x,
    s,
    xtmp,
    gtmp,
    lsr,
    psi1=0.2,
    psi2=2.0,
    psi3=0.1,
    iterfinitemax=ITERFINITEMAX,
    alphamax=math.inf,
):
    """Propose the initial step of a line search (HZ, stages I1-I2).

    Parameters
    ----------
    alpha : float
        Step accepted by the previous line search.
    df : Objective
        Objective wrapper; only function values are requested here.
    x, s : np.ndarray
        Current point and search direction.
    xtmp, gtmp : np.ndarray
        Scratch buffers of the same length as ``x``.
    lsr : LineSearchResults
        Cache seeded with ``(0, phi0, dphi0)``.
    psi1, psi2, psi3 : float
        Trial fraction, expansion factor and non-finite shrink factor.
    alphamax : float
        Upper bound on any step evaluated or returned.

    Returns
    -------
    tuple[float, bool, int, int]
        ``(alpha, mayterminate, f_calls, g_calls)``. ``mayterminate`` is True
        when ``alpha`` is the minimizer of a convex quadratic fit, in which
        case the line search may accept it after a single Wolfe test.
    """
    phi0 = lsr.value[0]
    dphi0 = lsr.slope[0]
    alphatest = min(psi1 * alpha, alphamax)
    if not alphatest > 0:
        return 0.0, False, 0, 0
    phitest, _ = linefunc(df, x, s, alphatest, xtmp, gtmp, False)
    f_calls = 1

    iterfinite = 1
    while not math.isfinite(phitest):
        alphatest = psi3 * alphatest
        phitest, _ = linefunc(df, x, s, alphatest, xtmp, gtmp, False)
        f_calls += 1
        lsr.nfailures += 1
        iterfinite += 1
        if iterfinite >= iterfinitemax:
            logger.warning(
                "alphatry: no finite trial value after %d attempts; using alpha=0.",
                iterfinite,
            )
            return 0.0, True, f_calls, 0

    # Quadratic fit through phi(0), phi'(0) and phi(alphatest)
    a = ((phitest - phi0) / alphatest - dphi0) / alphatest
    logger.debug(
        "alphatry: alphatest=%.3e, phi0=%.6e, phitest=%.6e, quadcoef=%.3e",
        alphatest,
        phi0,
        phitest,
        a,
    )
    mayterminate = False
    if math.isfinite(a) and a > 0 and phitest <= phi0:
        alpha = -dphi0 / 2 / a
        if alpha == 0:
            raise LineSearchError(
                f"alpha is zero. dphi0 = {dphi0}, phi0 = {phi0}, "
                f"phitest = {phitest}, alphatest = {alphatest}, a = {a}",
                alpha=alpha,
            )
        if alpha <= alphamax:
            mayterminate = True
        else:
            alpha = alphamax
    elif phitest > phi0:
        alpha = alphatest
    else:
        alpha *= psi2
    alpha = min(alphamax, alpha)
    logger.debug("alphatry: alpha guess %.3e (mayterminate=%s)", alpha, mayterminate)
    return alpha, mayterminate, f_calls, 0


def hz_linesearch(
    df,
    x,
    s,
    xtmp,
    g,
    lsr,
    c,
    mayterminate,
    delta=DEFAULT_DELTA,
    sigma=DEFAULT_SIGMA,
    alphamax=math.inf,
    rho=5.0,
    epsilon=1e-6,
    gamma=0.66,
    linesearchmax=50,
    psi3=0.1,
    iterfinitemax=ITERFINITEMAX,
):
    """Find a step satisfying the (approximate) Wolfe conditions.

    Parameters
    ----------
    df : Objective
        Objective wrapper.
    x, s : np.ndarray
        Current point and descent direction.
    xtmp, g : np.ndarray
        Scratch buffers; on return they hold the last evaluated point and
        its gradient, which need not be the accepted step.
    lsr : LineSearchResults
        Cache seeded with ``(0, phi0, dphi0)``; all samples are appended.
    c : float
        Initial trial step.
    mayterminate : bool
        Whether ``c`` came from quadratic interpolation and may be accepted
        straight away.
    delta, sigma : float
        Sufficient-decrease and curvature constants, ``delta < sigma < 1``.
    alphamax : float
        No step larger than this is evaluated.
    rho : float
        Expansion factor while bracketing.
    epsilon : float
        Relative slack of the approximate-Wolfe value test.
    gamma : float
        Required interval shrink per secant step before bisecting.
    linesearchmax : int
        Iteration budget.

    Returns
    -------
    LineSearchOutcome
        ``(alpha, f_calls, g_calls, converged)``. ``converged`` is False when
        the budget ran out or no finite point could be found; ``alpha`` is
        then the best step seen.
    """
    f_calls = 0
    g_calls = 0
    logger.debug("New linesearch")

    phi0 = lsr.value[0]
    dphi0 = lsr.slope[0]
    if not (math.isfinite(phi0) and math.isfinite(dphi0)):
        raise LineSearchError("Initial value and slope must be finite")
    philim = phi0 + epsilon * abs(phi0)
    if alphamax <= 0:
        logger.debug("Line search started on the boundary (alphamax=%.3e).", alphamax)
        return LineSearchOutcome(0.0, f_calls, g_calls, True)
    if not (math.isfinite(c) and c > 0):
        logger.warning("Line search received invalid initial step %r; using alpha=0.", c)
        return LineSearchOutcome(0.0, f_calls, g_calls, False)
    c = min(c, alphamax)

    phic, dphic = linefunc(df, x, s, c, xtmp, g, True)
    f_calls += 1
    g_calls += 1
    iterfinite = 1
    while not (math.isfinite(phic) and math.isfinite(dphic)) and iterfinite < iterfinitemax:
        mayterminate = False
        lsr.nfailures += 1
        iterfinite += 1
        c *= psi3
        phic, dphic = linefunc(df, x, s, c, xtmp, g, True)
        f_calls += 1
        g_calls += 1
    if not (math.isfinite(phic) and math.isfinite(dphic)):
        logger.warning("Failed to achieve a finite new evaluation point; using alpha=0.")
        return LineSearchOutcome(0.0, f_calls, g_calls, False)
    lsr.push(c, phic, dphic)

    # c came from quadratic interpolation: test it before bracketing
    if mayterminate and satisfies_wolfe(c, phic, dphic, phi0, dphi0, philim, delta, sigma):
        logger.debug("Wolfe condition satisfied on point alpha = %.6e", c)
        return LineSearchOutcome(c, f_calls, g_calls, True)

    try:
        # Initial bracketing step (HZ, stages B0-B3)
        isbracketed = False
        ia = 0
        ib = 1
        iteration = 1
        cold = -1.0
        while not isbracketed and iteration < linesearchmax:
            logger.debug(
                "bracketing: ia=%d, ib=%d, c=%.6e, phic=%.6e, dphic=%.6e",
                ia,
                ib,
                c,
                phic,
                dphic,
            )
            if dphic >= 0:
                # Upward slope reached: c is b, search back for a
                ib = len(lsr) - 1
                for i in range(ib - 1, -1, -1):
                    if lsr.value[i] <= philim:
                        ia = i
                        break
                isbracketed = True
            elif lsr.value[-1] > philim:
                # Still sloping down but already above phi0
                ia, ib, f_up, g_up = bisect(
                    df, x, s, xtmp, g, lsr, 0, len(lsr) - 1, philim, iterfinitemax
                )
                f_calls += f_up
                g_calls += g_up
                isbracketed = True
            else:
                # Still going downhill: expand
                cold = c
                c *= rho
                if c > alphamax:
                    c = (alphamax + cold) / 2
                    logger.debug(
                        "bracket: exceeding alphamax, bisecting: alphamax=%.6e, cold=%.6e, c=%.6e",
                        alphamax,
                        cold,
                        c,
                    )
                    if c == cold or np.nextafter(c, math.inf) >= alphamax:
                        return LineSearchOutcome(cold, f_calls, g_calls, True)
                phic, dphic = linefunc(df, x, s, c, xtmp, g, True)
                f_calls += 1
                g_calls += 1
                iterfinite = 1
                while (
                    not (math.isfinite(phic) and math.isfinite(dphic))
                    and c > np.nextafter(cold, math.inf)
                    and iterfinite < iterfinitemax
                ):
                    alphamax = c
                    lsr.nfailures += 1
                    iterfinite += 1
                    logger.debug("bracket: non-finite value, bisection")
                    c = (cold + c) / 2
                    phic, dphic = linefunc(df, x, s, c, xtmp, g, True)
                    f_calls += 1
                    g_calls += 1
                if not (math.isfinite(phic) and math.isfinite(dphic)):
                    logger.debug("bracket: no finite point beyond %.6e", cold)
                    return LineSearchOutcome(cold, f_calls, g_calls, False)
                if dphic < 0 and c == alphamax:
                    # On the edge of the allowed region and still descending
                    if iterfinite >= iterfinitemax:
                        logger.warning(
                            "Failed to expand interval to bracket with finite values "
                            "(c=%.6e, alphamax=%.6e, phic=%.6e, dphic=%.6e). "
                            "If this happens frequently, check your function and gradient.",
                            c,
                            alphamax,
                            phic,
                            dphic,
                        )
                    return LineSearchOutcome(c, f_calls, g_calls, True)
                lsr.push(c, phic, dphic)
            iteration += 1

        if not isbracketed:
            alpha = _best_alpha(lsr)
            logger.warning(
                "Line search could not bracket a minimum in %d iterations; using alpha=%.3e.",
                linesearchmax,
                alpha,
            )
            return LineSearchOutcome(alpha, f_calls, g_calls, False)

        while iteration < linesearchmax:
            a = lsr.alpha[ia]
            b = lsr.alpha[ib]
            logger.debug(
                "linesearch: ia=%d, ib=%d, a=%.6e, b=%.6e, phi(a)=%.6e, phi(b)=%.6e",
                ia,
                ib,
                a,
                b,
                lsr.value[ia],
                lsr.value[ib],
            )
            if b - a <= np.spacing(b):
                return LineSearchOutcome(a, f_calls, g_calls, True)
            iswolfe, iA, iB, f_up, g_up = secant2(
                df, x, s, xtmp, g, lsr, ia, ib, philim, delta, sigma, iterfinitemax
            )
            f_calls += f_up
            g_calls += g_up
            if iswolfe:
                return LineSearchOutcome(lsr.alpha[iA], f_calls, g_calls, True)
            A = lsr.alpha[iA]
            B = lsr.alpha[iB]
            if B - A < gamma * (b - a):
                logger.debug("linesearch: secant succeeded")
                if (
                    np.nextafter(lsr.value[ia], math.inf) >= lsr.value[ib]
                    and np.nextafter(lsr.value[iA], math.inf) >= lsr.value[iB]
                ):
                    # So flat that secant did nothing useful
                    logger.debug("linesearch: secant suggests it's flat")
                    return LineSearchOutcome(A, f_calls, g_calls, True)
                ia = iA
                ib = iB
            else:
                # Secant is converging too slowly, use bisection
                logger.debug("linesearch: secant failed, using bisection")
                c, phic, dphic, calls = _finite_point(
                    df, x, s, xtmp, g, lsr, A, (A + B) / 2, iterfinitemax
                )
                f_calls += calls
                g_calls += calls
                lsr.push(c, phic, dphic)
                ia, ib, f_up, g_up = update(
                    df, x, s, xtmp, g, lsr, iA, iB, len(lsr) - 1, philim, iterfinitemax
                )
                f_calls += f_up
                g_calls += g_up
            iteration += 1
    except _ExteriorRegion as exc:
        alpha = _best_alpha(lsr)
        logger.warning(
            "Line search hit a non-finite region near alpha=%.3e; using alpha=%.3e.",
            exc.args[0],
            alpha,
        )
        return LineSearchOutcome(alpha, f_calls, g_calls, False)

    alpha = _best_alpha(lsr)
    logger.warning(
        "Linesearch failed to converge, reached maximum iterations %d; using alpha=%.3e.",
        linesearchmax,
        alpha,
    )
    return LineSearchOutcome(alpha, f_calls, g_calls, False)


def secant2(df, x, s, xtmp, g, lsr, ia, ib, philim, delta, sigma, iterfinitemax=ITERFINITEMAX):
    """Double secant step (HZ, stages S1-S4).

    Returns ``(iswolfe, iA, iB, f_calls, g_calls)``.
    """
    phi0 = lsr.value[0]
    dphi0 = lsr.slope[0]
    a = lsr.alpha[ia]
    b = lsr.alpha[ib]
    dphia = lsr.slope[ia]
    dphib = lsr.slope[ib]
    if not (dphia < 0 and dphib >= 0):
        raise LineSearchError(
            "Search direction is not a direction of descent; this error may indicate "
            f"that user-provided derivatives are inaccurate. (dphia = {dphia:f}; dphib = {dphib:f})",
            alpha=a,
        )
    c = secant(a, b, dphia, dphib)
    logger.debug("secant2: a=%.6e, b=%.6e, c=%.6e", a, b, c)
    c, phic, dphic, f_calls = _finite_point(df, x, s, xtmp, g, lsr, a, c, iterfinitemax)
    g_calls = f_calls
    lsr.push(c, phic, dphic)
    ic = len(lsr) - 1
    if satisfies_wolfe(c, phic, dphic, phi0, dphi0, philim, delta, sigma):
        logger.debug("secant2: first c satisfied Wolfe conditions")
        return True, ic, ic, f_calls, g_calls

    iA, iB, f_up, g_up = update(df, x, s, xtmp, g, lsr, ia, ib, ic, philim, iterfinitemax)
    f_calls += f_up
    g_calls += g_up
    a = lsr.alpha[iA]
    b = lsr.alpha[iB]
    c = math.nan
    if iB == ic:
        # b was updated, update a as well
        c = _secant_at(lsr, ib, iB)
    elif iA == ic:
        c = _secant_at(lsr, ia, iA)
    if a <= c <= b:
        logger.debug("secant2: second c = %.6e", c)
        c, phic, dphic, calls = _finite_point(df, x, s, xtmp, g, lsr, a, c, iterfinitemax)
        f_calls += calls
        g_calls += calls
        lsr.push(c, phic, dphic)
        ic = len(lsr) - 1
        if satisfies_wolfe(c, phic, dphic, phi0, dphi0, philim, delta, sigma):
            logger.debug("secant2: second c satisfied Wolfe conditions")
            return True, ic, ic, f_calls, g_calls
        iA, iB, f_up, g_up = update(df, x, s, xtmp, g, lsr, iA, iB, ic, philim, iterfinitemax)
        f_calls += f_up
        g_calls += g_up
    logger.debug("secant2 output: a=%.6e, b=%.6e", lsr.alpha[iA], lsr.alpha[iB])
    return False, iA, iB, f_calls, g_calls


def update(df, x, s, xtmp, g, lsr, ia, ib, ic, philim, iterfinitemax=ITERFINITEMAX):
    """Shrink the bracket ``[a, b]`` using the sample ``ic`` (HZ, stages U0-U3).

    The returned pair keeps ``phi'(a) < 0``, ``phi(a) <= philim`` and
    ``phi'(b) >= 0``.
    """
    a = lsr.alpha[ia]
    b = lsr.alpha[ib]
    c, phic, dphic = lsr[ic]
    logger.debug(
        "update: ia=%d, a=%.6e, ib=%d, b=%.6e, c=%.6e, phic=%.6e, dphic=%.6e",
        ia,
        a,
        ib,
        b,
        c,
        phic,
        dphic,
    )
    if c < a or c > b:
        return ia, ib, 0, 0
    if dphic >= 0:
        return ia, ic, 0, 0
    # phi may not be monotonic between a and c, so a is only replaced when
    # the value stays below philim
    if phic <= philim:
        return ic, ib, 0, 0
    # The minimum lies between a and c
    return bisect(df, x, s, xtmp, g, lsr, ia, ic, philim, iterfinitemax)


def bisect(df, x, s, xtmp, g, lsr, ia, ib, philim, iterfinitemax=ITERFINITEMAX):
    """HZ stage U3 with ``theta = 0.5``.

    Expects ``phi'(a) < 0 <= philim - phi(a)`` and ``phi'(b) < 0`` with
    ``phi(b) > philim``.
    """
    a = lsr.alpha[ia]
    b = lsr.alpha[ib]
    f_calls = 0
    g_calls = 0
    while b - a > np.spacing(b):
        logger.debug("bisect: a=%.6e, b=%.6e, b-a=%.3e", a, b, b - a)
        d, phid, dphid, calls = _finite_point(
            df, x, s, xtmp, g, lsr, a, (a + b) / 2, iterfinitemax
        )
        f_calls += calls
        g_calls += calls
        lsr.push(d, phid, dphid)
        id_ = len(lsr) - 1
        if dphid >= 0:
            return ia, id_, f_calls, g_calls
        if phid <= philim:
            # Replace a, but keep bisecting until phi'(b) >= 0
            a = d
            ia = id_
        else:
            b = d
            ib = id_
    return ia, ib, f_calls, g_calls


__all__ = [
    "DEFAULT_DELTA",
    "DEFAULT_SIGMA",
    "LineSearchOutcome",
    "LineSearchResults",
    "alphainit",
    "alphatry",
    "bisect",
    "hz_linesearch",
    "linefunc",
    "satisfies_wolfe",
    "secant",
    "secant2",
    "update",
]
