"""
Jogger-group load on a single-span footbridge (EN 1991-2 / HIVOSS jogger case)
with the time of travel of the group accounted for.

Model:
  The span is a simply supported beam with free rotational supports, reduced
  to one mode (SDOF). A group of joggers crosses it at velocity v, so the
  modal load is F(t) = F0 sin(pi v t / L) while the group is on the span.
  Near resonance the amplitude envelope y(t) (as a ratio of the steady-state
  resonant amplitude) obeys:

    T y' + y = sin(a t),    y(0) = 0
    a = pi v / L            (angular frequency of the load at the mode shape)
    T = 1 / (2 pi f z)      (rise/decay time of the resonant amplitude)

  whose closed form is

    y(t) = (-a T cos(a t) + a T exp(-t/T) + sin(a t)) / ((a T)^2 + 1)

Outputs:
  - Time t* of maximal amplitude within [0, pi/a] (Newton on y')
  - Peak amplitude ratio y(t*)
  - Jogger load and maximal acceleration per jogger for the given modal mass

Defaults follow the reference case (L=10 m, v=3 m/s, f=2.8 Hz, z=0.006);
anything not given on the command line is asked for interactively.
"""

from __future__ import annotations

import math
import argparse
import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import matplotlib.pyplot as plt
from scipy.integrate import solve_ivp


logger = logging.getLogger(__name__)


# ----------------------------
# Constants
# ----------------------------

JOGGER_FORCE_N = 1250.0       # N, single jogger reference force
DEFAULT_VELOCITY = 3.0        # m/s, assumed jogging speed

# Jogging step frequency bands (Hz)
JOG_BAND_LOW = 1.9
JOG_PLATEAU_LOW = 2.2
JOG_PLATEAU_HIGH = 2.7
JOG_BAND_HIGH = 3.5

NEWTON_ITERATIONS = 6
NEWTON_START = 0.75           # initial guess as fraction of pi/a
NEWTON_RESEED = 0.45          # restart point after a negative step

PLOT_SAMPLES = 100
PLOT_DURATION = 20.0          # s


# ----------------------------
# Parameters
# ----------------------------

def _require_positive(name: str, value: float) -> None:
    if not (math.isfinite(value) and value > 0.0):
        raise ValueError(f"{name} must be finite and > 0 (got {value!r})")


@dataclass(frozen=True)
class BridgeInput:
    span_length: float               # m
    frequency: float                 # Hz, resonance frequency of the span
    damping_ratio: float             # -
    modal_mass: float                # kg, generalized mass
    velocity: float = DEFAULT_VELOCITY  # m/s

    def __post_init__(self):
        _require_positive("span_length", self.span_length)
        _require_positive("frequency", self.frequency)
        _require_positive("damping_ratio", self.damping_ratio)
        _require_positive("modal_mass", self.modal_mass)
        _require_positive("velocity", self.velocity)


@dataclass(frozen=True)
class RunOptions:
    plot_samples: bool = False       # print (t, y) table for external plotting
    override_velocity: bool = False  # ask for the velocity instead of assuming it
    show_plot: bool = False          # open a matplotlib figure


@dataclass(frozen=True)
class JoggerResponse:
    angular_frequency: float   # a [rad/s]
    time_constant: float       # T [s]
    peak_time: float           # t* [s]
    walk_time: float           # L/v [s]
    peak_ratio: float          # y(t*) [-]
    load_factor: float         # [-]
    jogger_load: float         # N per jogger
    max_acceleration: float    # m/s^2 per jogger

    @property
    def peak_time_percent(self) -> float:
        return self.peak_time * 100.0 / self.walk_time

    @property
    def peak_ratio_percent(self) -> float:
        return self.peak_ratio * 100.0


# ----------------------------
# Load factor
# ----------------------------

def load_factor(f: float) -> float:
    """
    Fraction of the jogger force that counts at step frequency f [Hz].

    Zero outside (1.9, 3.5), one on the plateau [2.2, 2.7]. The flanks are
    (f - 1.9)*(2.2 - 1.9) and -(f - 3.5)*(3.5 - 2.7); they do not reach 1 at
    the plateau edges, so the factor jumps there (0.09 -> 1 at 2.2 Hz,
    1 -> 0.64 just above 2.7 Hz).
    """
    if f <= JOG_BAND_LOW or f >= JOG_BAND_HIGH:
        return 0.0
    elif f < JOG_PLATEAU_LOW:
        return (f - JOG_BAND_LOW) * (JOG_PLATEAU_LOW - JOG_BAND_LOW)
    elif f <= JOG_PLATEAU_HIGH:
        return 1.0
    else:
        return -(f - JOG_BAND_HIGH) * (JOG_BAND_HIGH - JOG_PLATEAU_HIGH)


# ----------------------------
# Derived parameters
# ----------------------------

def encounter_angular_frequency(span_length: float, velocity: float) -> float:
    """a = pi v / L: phase rate of the load along the half-sine mode shape."""
    _require_positive("span_length", span_length)
    _require_positive("velocity", velocity)
    return math.pi * velocity / span_length


def decay_time_constant(frequency: float, damping_ratio: float) -> float:
    """T = 1 / (2 pi f z) = 1 / (zeta omega)."""
    _require_positive("frequency", frequency)
    _require_positive("damping_ratio", damping_ratio)
    return 1.0 / (2.0 * math.pi * frequency * damping_ratio)


# ----------------------------
# Amplitude ratio (closed form)
# ----------------------------

def response_ratio(t, a: float, T: float):
    """
    Amplitude ratio y(t) of the resonant envelope while the group is on span.

    t may be a float or an ndarray; a [rad/s] and T [s] must be > 0.
    y(0) = 0 and y -> 1 for a slow crossing of a lightly damped span.
    """
    return (-a * T * np.cos(a * t) + a * T * np.exp(-t / T) + np.sin(a * t)) / ((a * T) * (a * T) + 1)


def response_ratio_dt(t, a: float, T: float):
    """dy/dt"""
    return (a * a * T * np.sin(a * t) + a * np.cos(a * t) - a * np.exp(-t / T)) / ((a * T) * (a * T) + 1)


def response_ratio_dt2(t, a: float, T: float):
    """d2y/dt2"""
    return (a * a * a * T * np.cos(a * t) - a * a * np.sin(a * t) + a * np.exp(-t / T) / T) / ((a * T) * (a * T) + 1)


def integrate_envelope(a: float, T: float, t_eval: np.ndarray) -> np.ndarray:
    """
    Integrate T y' + y = sin(a t), y(0) = 0 numerically on t_eval.

    Independent check of response_ratio; not used for reported values.
    """
    t_eval = np.asarray(t_eval, dtype=float)

    def rhs(t: float, y: np.ndarray) -> np.ndarray:
        return (np.sin(a * t) - y) / T

    sol = solve_ivp(
        rhs,
        t_span=(0.0, float(t_eval[-1])),
        y0=[0.0],
        t_eval=t_eval,
        method="LSODA",         # stiff when T << pi/a
        rtol=1e-9,
        atol=1e-12,
    )

    if not sol.success:
        raise RuntimeError(f"Envelope integration failed: {sol.message}")

    return sol.y[0]


def envelope_residual(a: float, T: float, n: int = 200) -> float:
    """Largest |closed form - integrated envelope| over [0, pi/a]."""
    t = np.linspace(0.0, math.pi / a, n)
    return float(np.max(np.abs(response_ratio(t, a, T) - integrate_envelope(a, T, t))))


def sample_response(a: float, T: float, n: int = PLOT_SAMPLES,
                    duration: float = PLOT_DURATION) -> Tuple[np.ndarray, np.ndarray]:
    """(t, y) at t_i = i*duration/n, i = 0..n-1. Not limited to pi/a."""
    t = np.arange(n) * duration / n
    return t, response_ratio(t, a, T)


# ----------------------------
# Peak search
# ----------------------------

def find_peak_time(a: float, T: float) -> float:
    """
    Time of the maximum of y(t) in [0, pi/a].

    Newton's method on y'(t), started at 0.75 pi/a, with a fixed number of
    steps and no tolerance check. A step beyond pi/a is clamped to pi/a; a
    negative step restarts at 0.45 pi/a. The result is always in [0, pi/a].

    Steps are taken in IEEE arithmetic: a zero curvature gives an infinite
    step that the clamps catch, and an undefined step (0/0, inf/inf from
    overflowing terms) is treated as leaving the window at the top.
    """
    _require_positive("a", a)
    _require_positive("T", T)

    a = np.float64(a)
    T = np.float64(T)
    t_max = np.pi / a
    t = t_max * NEWTON_START
    logger.debug(f"Newton start t={t:.6g} (t_max={t_max:.6g})")

    with np.errstate(over="ignore", under="ignore", divide="ignore", invalid="ignore"):
        for i in range(NEWTON_ITERATIONS):
            A = response_ratio_dt2(t, a, T)
            B = response_ratio_dt(t, a, T) - A * t
            t = -B / A
            if not t <= t_max:  # nan included
                t = t_max
            if t < 0:
                t = NEWTON_RESEED * t_max
            logger.debug(f"  iter {i}: t={t:.9g}, A={A:.6g}, B={B:.6g}, A*t+B={A * t + B:.3e}")

    return float(t)


# ----------------------------
# Response per jogger
# ----------------------------

def compute_response(inputs: BridgeInput) -> JoggerResponse:
    a = encounter_angular_frequency(inputs.span_length, inputs.velocity)
    T = decay_time_constant(inputs.frequency, inputs.damping_ratio)

    t_peak = find_peak_time(a, T)
    y_max = float(response_ratio(t_peak, a, T))
    factor = load_factor(inputs.frequency)

    # Steady resonant amplitude of a unit modal force is 1/(2 m z omega^2)
    acc = y_max * JOGGER_FORCE_N * factor / (2.0 * inputs.modal_mass * inputs.damping_ratio)

    logger.info(f"a={a:.4f} rad/s, T={T:.4f} s, t*={t_peak:.4f} s, y*={y_max:.4f}")

    return JoggerResponse(
        angular_frequency=a,
        time_constant=T,
        peak_time=t_peak,
        walk_time=inputs.span_length / inputs.velocity,
        peak_ratio=y_max,
        load_factor=factor,
        jogger_load=factor * JOGGER_FORCE_N,
        max_acceleration=acc,
    )


# ----------------------------
# Plotting + report
# ----------------------------

def plot_response(response: JoggerResponse, t: np.ndarray, y: np.ndarray,
                  title: str = "Jogger group crossing a single span"):
    fig, ax = plt.subplots(figsize=(10, 5))

    ax.plot(t, y)
    ax.set_xlabel("time t [s]")
    ax.set_ylabel("amplitude ratio y(t) [-]")
    ax.set_title(title)

    ax.axvline(response.peak_time, linestyle="--")
    ax.text(response.peak_time, response.peak_ratio, f"  y* = {response.peak_ratio:.3f}", va="bottom")
    ax.axvline(response.walk_time, linestyle=":", linewidth=1)

    fig.tight_layout()
    plt.show()
    return fig


def print_report(inputs: BridgeInput, response: JoggerResponse, opts: RunOptions) -> None:
    print(f"Resonance frequency at span [Hz] = {inputs.frequency:g}")
    print(f"Jogger load [N]                  = {response.jogger_load:g}  per jogger.\n")
    print(f"Length of span [m]               = {inputs.span_length:g}")
    if opts.override_velocity:
        print(f"Velocity joggers                 = {inputs.velocity:g}")
    else:
        print(f"Assumed velocity jogger [m/s]    = {inputs.velocity:g}")
    print(f"Damping of bridge [-]            = {inputs.damping_ratio:g}\n")

    if opts.plot_samples:
        t, y = sample_response(response.angular_frequency, response.time_constant)
        for ti, yi in zip(t, y):
            print(f"{ti:g}, {yi:g}")

    print(f"t_max                            = {response.peak_time:g} of {response.walk_time:g} [s]"
          f" at {response.peak_time_percent:g} %")
    print(f"y_max                            = {response.peak_ratio_percent:g} % of maximum.\n")
    print(f"Generalized mass [kg]            = {inputs.modal_mass:g}")
    print(f"Maximal acceleration [m/s^2]     = {response.max_acceleration:g} per jogger.")


# ----------------------------
# CLI / main
# ----------------------------

def prompt_float(label: str) -> float:
    return float(input(f"{label:<33}= ").strip())


def read_inputs(args: argparse.Namespace, opts: RunOptions) -> BridgeInput:
    """Take values from args and ask for the missing ones, in the usual order."""
    f = args.frequency if args.frequency is not None else prompt_float("Resonance frequency at span [Hz]")
    L = args.span if args.span is not None else prompt_float("Length of span [m]")

    v = DEFAULT_VELOCITY
    if args.velocity is not None:
        v = args.velocity
    elif opts.override_velocity:
        v = prompt_float("Velocity joggers")

    z = args.damping if args.damping is not None else prompt_float("Damping of bridge [-]")
    m = args.mass if args.mass is not None else prompt_float("Generalized mass [kg]")

    return BridgeInput(span_length=L, frequency=f, damping_ratio=z, modal_mass=m, velocity=v)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Maximal acceleration of a single span loaded by a jogger group")
    p.add_argument("-p", "--plot", action="store_true", help="print (t, y) samples for plotting")
    p.add_argument("-v", "--override-velocity", action="store_true", help="ask for the jogger velocity")
    p.add_argument("--show", action="store_true", help="show the amplitude ratio curve")
    p.add_argument("--debug", action="store_true", help="log Newton iterations")
    p.add_argument("--span", type=float, default=None, help="length of span [m]")
    p.add_argument("--frequency", type=float, default=None, help="resonance frequency [Hz]")
    p.add_argument("--velocity", type=float, default=None, help="jogger velocity [m/s]")
    p.add_argument("--damping", type=float, default=None, help="damping ratio [-]")
    p.add_argument("--mass", type=float, default=None, help="generalized mass [kg]")
    return p


def run(argv=None) -> JoggerResponse:
    p = build_parser()
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    opts = RunOptions(
        plot_samples=args.plot,
        override_velocity=args.override_velocity or args.velocity is not None,
        show_plot=args.show,
    )

    try:
        inputs = read_inputs(args, opts)
        response = compute_response(inputs)
    except ValueError as e:
        p.error(str(e))
    except EOFError:
        p.error("input ended before all values were given")

    if args.debug:
        try:
            res = envelope_residual(response.angular_frequency, response.time_constant)
            logger.debug(f"closed form vs integrated envelope: max difference {res:.3e}")
        except RuntimeError as e:
            logger.warning(f"Envelope check skipped: {e}")

    print_report(inputs, response, opts)

    if opts.show_plot:
        t, y = sample_response(response.angular_frequency, response.time_constant)
        plot_response(response, t, y)

    return response


def main(argv=None):
    run(argv)


if __name__ == "__main__":
    main()
