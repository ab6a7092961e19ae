"""CLI entry points for bigiron-virt."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from bigiron import api
from bigiron.exceptions import ManagerError
from bigiron.utils import log


def create_resources_from_file(model_file: Path) -> None:
    try:
        text = model_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManagerError(f"Cannot read {model_file}: {exc}") from exc
    machines = api.create_from_yaml(text)
    for machine in machines:
        log("SUCCESS", f"Created {machine.name}")


def print_machines() -> None:
    print("ID\tSTATUS")
    for stat in api.list_machines():
        print(f"{stat.id}\t{stat.status}")


def destroy(machine_id: str) -> None:
    api.destroy_machine(machine_id)
    print(f"Destroyed {machine_id}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bigiron-virt", description="Provision virtual machines on this libvirt host")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create machines from a YAML resource file")
    create.add_argument("model_file", type=Path, metavar="FILE")

    sub.add_parser("list", help="List instances on this host")

    destroy_cmd = sub.add_parser("destroy", help="Stop and remove an instance")
    destroy_cmd.add_argument("id", metavar="ID")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "create":
            create_resources_from_file(args.model_file)
        elif args.command == "list":
            print_machines()
        elif args.command == "destroy":
            destroy(args.id)
    except ManagerError as exc:
        log("ERROR", str(exc))
        return 1
    return 0
