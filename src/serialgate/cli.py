"""
Command-line interface for the serial gateway.

Provides commands for running the Socket.IO gateway and listing serial ports.
"""

import logging
import socket
from pathlib import Path

import click

from serialgate import __version__
from serialgate.core.config import DEFAULT_CONFIG_FILE, Config, load_config, save_config
from serialgate.serial.port import list_ports


def _local_ip_address() -> str:
    """Best guess at the host's outward-facing IPv4 address."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        try:
            # No packets are sent for a UDP connect
            s.connect(("10.255.255.255", 1))
            return s.getsockname()[0]
        except OSError:
            return "127.0.0.1"


@click.group()
@click.version_option(version=__version__, prog_name="serialgate")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "-c", "--config", "config_path", type=click.Path(exists=True, path_type=Path),
    help="Path to config file"
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """Serial Gateway - Share serial devices with real-time clients."""
    ctx.ensure_object(dict)
    config = load_config(config_path)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config

    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


@main.command("serve")
@click.option("--host", "-h", help="Interface to bind (default from config)")
@click.option("--port", "-p", type=int, help="Port to listen on (default from config)")
@click.option(
    "--certfile", type=click.Path(exists=True, path_type=Path), help="TLS certificate"
)
@click.option(
    "--keyfile", type=click.Path(exists=True, path_type=Path), help="TLS private key"
)
@click.pass_context
def serve_cmd(
    ctx: click.Context,
    host: str | None,
    port: int | None,
    certfile: Path | None,
    keyfile: Path | None,
) -> None:
    """Run the Socket.IO serial gateway."""
    from serialgate.web.app import create_app

    config: Config = ctx.obj["config"]
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    if certfile:
        config.server.certfile = certfile
    if keyfile:
        config.server.keyfile = keyfile

    app, sio = create_app(config)

    run_kwargs = {}
    if config.server.tls_enabled:
        run_kwargs["ssl_context"] = (str(config.server.certfile), str(config.server.keyfile))
    elif config.server.certfile or config.server.keyfile:
        click.echo("Error: TLS needs both --certfile and --keyfile", err=True)
        ctx.exit(1)

    click.echo(f"local ip address: {_local_ip_address()}/{config.server.port}")
    sio.run(
        app,
        host=config.server.host,
        port=config.server.port,
        allow_unsafe_werkzeug=True,
        **run_kwargs,
    )


@main.command("ports")
@click.pass_context
def ports_cmd(ctx: click.Context) -> None:
    """List available serial ports."""
    verbose = ctx.obj.get("verbose", False)
    ports = list_ports()

    if not ports:
        click.echo("No serial ports found")
        return

    click.echo(f"{'PATH':<25} {'VID:PID':<10} {'MANUFACTURER':<25} {'SERIAL':<20}")
    click.echo("-" * 82)

    for port in ports:
        ids = f"{port['vendorId']}:{port['productId']}" if port["vendorId"] else "-"
        manufacturer = port["manufacturer"] or "-"
        serial_number = port["serialNumber"] or "-"
        click.echo(f"{port['path']:<25} {ids:<10} {manufacturer:<25} {serial_number:<20}")

    if verbose:
        click.echo(f"\n{len(ports)} port(s) found")


@main.command("init-config")
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE, show_default=True, help="Where to write the file"
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def init_config_cmd(ctx: click.Context, output: Path, force: bool) -> None:
    """Write the effective configuration to a YAML file."""
    if output.exists() and not force:
        click.echo(f"Error: {output} already exists (use --force to overwrite)", err=True)
        ctx.exit(1)

    save_config(ctx.obj["config"], output)
    click.echo(f"Wrote configuration to {output}")


if __name__ == "__main__":
    main()
