"""
streamline: command line for contract bindings.

Commands:
  generate [ABI_DIR] [--out FILE]           accessor table of every *.json in ABI_DIR, as JSON
  inspect ABI_FILE                          accessor names, kinds and signatures of one contract
  decode ABI_FILE EVENT LOGS_JSON           run an event accessor over JSON-RPC shaped logs
         [--address ADDR]...
  call ABI_FILE FUNCTION ADDRESS            run a call accessor against a JSON-RPC node
       [--rpc-url URL]

Examples:
  streamline generate ./abi --out accessors.json
  streamline inspect abi/erc20.json
  streamline decode abi/erc20.json Transfer block.json --address 0x…
  streamline call abi/erc20.json totalSupply 0x… --rpc-url http://127.0.0.1:8545

A malformed descriptor exits with status 2.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import msgspec
import typer

from ..abi.descriptor import load_interface, load_interfaces
from ..config import load_config
from ..errors import GenerationFatal, ValidationError
from ..generator import AccessorKind, AccessorSpec, accessor_name, generate, generate_all, render_manifest
from ..runtime.calls import JsonRpcCaller
from ..runtime.logs import Block
from ..runtime.registry import CallAccessor, EventAccessor
from ..version import __version__

log = logging.getLogger(__name__)

app = typer.Typer(
    name="streamline",
    help="Generate and exercise typed contract accessors.",
    no_args_is_help=True,
    add_completion=False,
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2)


def _fatal(e: GenerationFatal) -> typer.Exit:
    typer.echo(f"{e.code}: {e.path}: {e.message}", err=True)
    return typer.Exit(code=2)


def _find(table: Dict[str, AccessorSpec], contract: str, name: str, kind: AccessorKind) -> AccessorSpec:
    for candidate in (name, f"{contract}.{name}", accessor_name(contract, name, kind)):
        spec = table.get(candidate)
        if spec is not None and spec.kind is kind:
            return spec
    known = ", ".join(n for n, s in table.items() if s.kind is kind) or "none"
    raise typer.BadParameter(f"no {kind.value} accessor {name!r} in {contract} (known: {known})")


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)", envvar="STREAMLINE_LOG_LEVEL"
    ),
) -> None:
    _configure_logging(log_level or load_config().log_level)


@app.command()
def version() -> None:
    """Print the streamline version."""
    typer.echo(__version__)


@app.command("generate")
def generate_cmd(
    abi_dir: Optional[Path] = typer.Argument(None, help="Directory of ABI *.json files"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the accessor table here instead of stdout"),
) -> None:
    """Emit the accessor table for every descriptor in ABI_DIR."""
    directory = abi_dir or load_config().abi_dir
    try:
        table = generate_all(load_interfaces(directory))
    except GenerationFatal as e:
        raise _fatal(e)

    text = _pretty(render_manifest(table))
    if out is None:
        typer.echo(text)
        return
    out.write_text(text + "\n", encoding="utf-8")
    log.info("wrote %d accessors to %s", len(table), out)


@app.command()
def inspect(abi_file: Path = typer.Argument(..., help="ABI JSON file")) -> None:
    """List the accessors one descriptor file produces."""
    try:
        table = generate(load_interface(abi_file))
    except GenerationFatal as e:
        raise _fatal(e)
    for name, spec in table.items():
        typer.echo(f"{name}\t{spec.kind.value}\t{spec.signature}")


def _read_logs(path: Path) -> Block:
    try:
        doc = msgspec.json.decode(path.read_bytes())
    except (OSError, msgspec.DecodeError) as e:
        raise typer.BadParameter(f"cannot read logs from {path}: {e}")
    if isinstance(doc, list):
        doc = {"logs": doc}
    if not isinstance(doc, dict):
        raise typer.BadParameter("LOGS_JSON must be a list of logs or a block object")
    try:
        return Block.from_rpc(doc)
    except ValidationError as e:
        raise typer.BadParameter(str(e))


@app.command()
def decode(
    abi_file: Path = typer.Argument(..., help="ABI JSON file"),
    event: str = typer.Argument(..., help="Event name (Transfer) or accessor name (erc20.transfer)"),
    logs_json: Path = typer.Argument(..., help="JSON list of logs, or a block object with a 'logs' list"),
    address: Optional[List[str]] = typer.Option(None, "--address", help="Keep only logs from this address"),
) -> None:
    """Decode logs with one event accessor and print the result."""
    try:
        iface = load_interface(abi_file)
        spec = _find(generate(iface), iface.name, event, AccessorKind.EVENT)
    except GenerationFatal as e:
        raise _fatal(e)

    result = EventAccessor(spec)(_read_logs(logs_json), address or None)
    typer.echo(_pretty(result.to_plain()))


@app.command()
def call(
    abi_file: Path = typer.Argument(..., help="ABI JSON file"),
    function: str = typer.Argument(..., help="Function name (totalSupply) or accessor name"),
    address: str = typer.Argument(..., help="Contract address (0x…)"),
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url", help="JSON-RPC endpoint", envvar="STREAMLINE_RPC_URL"),
) -> None:
    """Run one zero-argument view/pure call and print the decoded result."""
    try:
        iface = load_interface(abi_file)
        spec = _find(generate(iface), iface.name, function, AccessorKind.CALL)
    except GenerationFatal as e:
        raise _fatal(e)

    with JsonRpcCaller(rpc_url) as caller:
        result = CallAccessor(spec, caller)(address)
    typer.echo(_pretty(result.to_plain()))


if __name__ == "__main__":  # pragma: no cover
    app()
