# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from textwrap import dedent

import svdview
from svdview.session import PeripheralTree, SessionState


def cli() -> None:
    top = argparse.ArgumentParser(
        description=dedent(
            """\
            Inspect the peripherals described by a System View Description (SVD) file.
            """
        ),
        allow_abbrev=False,
    )
    top.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help=(
            "Output verbose logs. Can be given multiple times to increase the verbosity. "
            "By default only critical messages are output."
        ),
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "svd_file",
        type=Path,
        help="Path to the device SVD file.",
    )
    common.add_argument(
        "--options",
        type=json.loads,
        help=(
            "JSON object used to override fields in the Options object, for example "
            '\'{"gap_threshold": -1}\'.'
        ),
    )
    common.add_argument(
        "--ignore",
        metavar="NAME",
        action="append",
        help=(
            "Leave out the given peripheral. May be given multiple times. "
            "Replaces the default list of ignored peripherals."
        ),
    )

    sub = top.add_subparsers(title="subcommands")

    dump = sub.add_parser(
        "dump",
        parents=[common],
        help="Output the peripheral tree as JSON.",
        description=dedent(
            """\
            Output the peripheral tree of the device as JSON, with all registers at their
            reset values.
            """
        ),
        allow_abbrev=False,
    )
    dump.set_defaults(_command="dump")
    dump.add_argument(
        "-o",
        "--output-file",
        type=argparse.FileType("w", encoding="utf-8"),
        default=sys.stdout,
        help="File to write the output to. If not given, output is written to stdout.",
    )

    export = sub.add_parser(
        "export-xml",
        parents=[common],
        help="Export register values as an XML module table.",
        description=dedent(
            """\
            Export the registers of the device, at their reset values, as an XML module table.
            """
        ),
        allow_abbrev=False,
    )
    export.set_defaults(_command="export-xml")
    export.add_argument(
        "-p",
        "--peripheral",
        metavar="NAME",
        dest="peripherals",
        action="append",
        help="Limit output to the given peripheral. May be given multiple times.",
    )
    export.add_argument(
        "-o",
        "--output-file",
        type=Path,
        help="File to write the output to. If not given, output is written to stdout.",
    )

    args = top.parse_args()

    log_level = {
        0: logging.CRITICAL,
        1: logging.WARNING,
        2: logging.INFO,
        3: logging.DEBUG,
    }.get(args.verbose, logging.DEBUG)
    svdview.log.setLevel(log_level)

    if not hasattr(args, "_command"):
        top.print_usage()
        sys.exit(2)

    if args._command == "dump":
        cmd_dump(args)
    elif args._command == "export-xml":
        cmd_export_xml(args)
    else:
        top.print_usage()
        sys.exit(2)

    sys.exit(0)


def _load_tree(args: argparse.Namespace) -> PeripheralTree:
    options = svdview.Options()
    if args.options:
        options = dataclasses.replace(options, **args.options)
    if args.ignore:
        options = dataclasses.replace(options, ignored_peripherals=tuple(args.ignore))

    tree = PeripheralTree("cli", args.svd_file.name, options=options)
    state = asyncio.run(tree.start(str(args.svd_file)))
    if state != SessionState.LOADED:
        print(tree.message, file=sys.stderr)
        sys.exit(1)

    return tree


def cmd_dump(args: argparse.Namespace) -> None:
    tree = _load_tree(args)
    json.dump(tree.serialize(), args.output_file, indent=2)
    args.output_file.write("\n")


def cmd_export_xml(args: argparse.Namespace) -> None:
    tree = _load_tree(args)

    peripherals = tree.peripherals
    if args.peripherals:
        missing = set(args.peripherals) - {p.name for p in peripherals}
        if missing:
            print(f"Unknown peripheral(s): {', '.join(sorted(missing))}", file=sys.stderr)
            sys.exit(1)
        peripherals = [p for p in peripherals if p.name in args.peripherals]

    if args.output_file is not None:
        svdview.export_xml_file(peripherals, args.output_file)
    else:
        sys.stdout.buffer.write(svdview.export_xml(peripherals))


# Entry point when running with python -m svdview
if __name__ == "__main__":
    cli()
