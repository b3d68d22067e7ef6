"""Command line entry point.

    qdsim run SYSTEM SIM
    qdsim propagate_using_tmats SYSTEM SIM
    qdsim propagate_using_gqme SYSTEM SIM
    qdsim plot OUTPUT GROUP [--save FILE]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .config.units import TIME_UNITS
from .errors import QDSimError
from .log import get_logger
from .store import paths
from .store.h5store import group, open_store, read
from .workflows import propagate_using_gqme, propagate_using_tmats, run

__all__ = ["main", "build_parser"]

WORKFLOWS = {
    "run": run,
    "propagate_using_tmats": propagate_using_tmats,
    "propagate_using_gqme": propagate_using_gqme,
}

_HELP = {
    "run": "Run the primary computation of a simulation recipe",
    "propagate_using_tmats": "Propagate initial densities with cached transfer tensors",
    "propagate_using_gqme": "Propagate initial densities with a transfer-tensor derived GQME",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qdsim",
        description="Open quantum system dynamics with a persistent HDF5 cache",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (debug output)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in _HELP.items():
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("system", type=Path, help="System/bath YAML config")
        cmd.add_argument("simulation", type=Path, help="Simulation YAML config")

    plot = sub.add_parser("plot", help="Plot the populations of a stored trajectory")
    plot.add_argument("output", type=Path, help="HDF5 output file")
    plot.add_argument("group", type=str, help="Group holding time/time_unit/rho")
    plot.add_argument("--save", type=Path, default=None, help="Write the figure to this file")
    return parser


def _time_unit_label(time_unit: float) -> str:
    for name, factor in TIME_UNITS.items():
        if abs(factor - time_unit) <= 1e-12 * max(factor, 1.0):
            return name
    return f"{time_unit:.6g} au"


def _plot(output: Path, group_path: str, save: Path | None, logger: logging.Logger) -> None:
    import matplotlib

    matplotlib.use("Agg")
    from .visualization import plot_populations

    with open_store(output, "r") as handle:
        node = group(handle, [s for s in group_path.split("/") if s], create=False)
        time = read(node, paths.TIME_KEY)
        rho = read(node, paths.RHO_KEY)
        time_unit = read(node, paths.TIME_UNIT_KEY) if paths.TIME_UNIT_KEY in node else 1.0

    fig, _ = plot_populations(time, rho, _time_unit_label(float(time_unit)))
    target = save if save is not None else output.with_suffix(".png")
    fig.savefig(target)
    logger.info("Figure written to %s", target)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    logger = get_logger(args.verbose)

    try:
        if args.command == "plot":
            _plot(args.output, args.group, args.save, logger)
        else:
            WORKFLOWS[args.command](args.system, args.simulation, logger)
    except QDSimError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
