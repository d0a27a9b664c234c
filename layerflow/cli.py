"""Command-line interface for layerflow."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, List, Optional

from layerflow.algorithms.karzanov import flow_value, group_layers, maxflow
from layerflow.algorithms.types import FlowNetwork
from layerflow.logging import get_logger, set_global_log_level
from layerflow.samples import SAMPLE_NETWORKS

logger = get_logger(__name__)


def _format_table(
    headers: List[str],
    rows: List[List[Any]],
    min_width: int = 6,
) -> str:
    """Format data as a simple ASCII table.

    Args:
        headers: Column headers
        rows: Data rows
        min_width: Minimum column width

    Returns:
        Formatted table string
    """
    if not rows:
        return ""

    all_data = [headers] + rows
    col_widths = []
    for col_idx in range(len(headers)):
        max_width = max(len(str(row[col_idx])) for row in all_data)
        col_widths.append(max(max_width, min_width))

    def format_row(row_data: List[Any]) -> str:
        return "   " + " | ".join(
            f"{str(item):<{col_widths[i]}}" for i, item in enumerate(row_data)
        )

    lines = [format_row(headers)]
    lines.append("   " + "-+-".join("-" * width for width in col_widths))
    for row in rows:
        lines.append(format_row(row))
    return "\n".join(lines)


def _arc_rows(network: FlowNetwork) -> List[List[Any]]:
    rows = []
    for arc_id, from_node, into_node in network.arcs():
        arc = network.arc_data(arc_id)
        rows.append([arc_id, from_node, into_node, arc.capacity, arc.flow, arc.open])
    return rows


def _run_demo(instances: List[int]) -> None:
    """Solve the selected sample networks and print their arc flows."""
    for number in instances:
        source, sink, network = SAMPLE_NETWORKS[number]()
        logger.info(f"Solving sample network {number} from {source} to {sink}")
        maxflow(source, sink, network)

        print(f"\nNetwork {number}: {len(network)} nodes, {network.num_arcs()} arcs")
        print(
            _format_table(
                ["arc", "from", "into", "capacity", "flow", "open"],
                _arc_rows(network),
            )
        )
        print(f"   max flow {source} -> {sink}: {flow_value(sink, network)}")


def _show_layers(number: int) -> None:
    """Print the breadth-first layering of a sample network."""
    source, sink, network = SAMPLE_NETWORKS[number]()
    layers = group_layers(source, sink, network)
    print(f"\nNetwork {number}: {len(layers)} layers")
    print(
        _format_table(
            ["layer", "nodes"],
            [
                [depth, " ".join(str(node) for node in layer)]
                for depth, layer in enumerate(layers)
            ],
        )
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``layerflow`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="layerflow",
        description="Run the layered preflow max-flow algorithm on sample networks.",
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Suppress informational logging"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{demo,layers}",
        help="Available commands",
    )

    demo_parser = subparsers.add_parser(
        "demo", help="Compute max flow on sample networks"
    )
    demo_parser.add_argument(
        "--instance",
        "-i",
        type=int,
        nargs="+",
        choices=sorted(SAMPLE_NETWORKS),
        default=sorted(SAMPLE_NETWORKS),
        help="Sample networks to solve (default: all)",
    )

    layers_parser = subparsers.add_parser(
        "layers", help="Show the layering of a sample network"
    )
    layers_parser.add_argument(
        "--instance",
        "-i",
        type=int,
        choices=sorted(SAMPLE_NETWORKS),
        required=True,
        help="Sample network to layer",
    )

    effective_args = sys.argv[1:] if argv is None else argv

    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    if args.verbose:
        set_global_log_level(logging.DEBUG)
        logger.debug("Debug logging enabled")
    elif args.quiet:
        set_global_log_level(logging.WARNING)
    else:
        set_global_log_level(logging.INFO)

    if args.command == "demo":
        _run_demo(args.instance)
    elif args.command == "layers":
        _show_layers(args.instance)


if __name__ == "__main__":
    main()
