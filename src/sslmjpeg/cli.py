"""Command-line interface for sslmjpeg using Click."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from tqdm import tqdm

from sslmjpeg import __version__
from sslmjpeg.client import MjpegClient
from sslmjpeg.config import TRUST_MODES, Config
from sslmjpeg.errors import MjpegError
from sslmjpeg.models import Variant
from sslmjpeg.retry import open_with_retry
from sslmjpeg.streams.registry import FrameStreamRegistry
from sslmjpeg.utils.file import save_frame


# Setup logging - default to WARNING to avoid interfering with progress bars
# INFO and DEBUG logs are only shown when --verbose is used
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def connection_options(func):
    """Options shared by every command that opens a stream."""
    options = [
        click.option('--variant', '-V', default='default',
                     type=click.Choice([v.value for v in Variant], case_sensitive=False),
                     help='Frame decoder variant'),
        click.option('--timeout', type=float, default=None, help='Connection timeout in seconds'),
        click.option('--user', '-u', help='Username for Basic authentication'),
        click.option('--password', '-P', help='Password for Basic authentication'),
        click.option('--cookie', '-b', multiple=True, help='Cookie to send (repeatable)'),
        click.option('--cookie-file', help='Path to cookie file (Netscape format)'),
        click.option('--close-header', is_flag=True, help='Send "Connection: close"'),
        click.option('--trust', default='insecure', type=click.Choice(TRUST_MODES),
                     help='Certificate trust mode (default: insecure)'),
        click.option('--fingerprint', help='SHA-256 certificate fingerprint for --trust fingerprint'),
        click.option('--ca-file', help='CA bundle for --trust system'),
        click.option('--max-retries', default=1, help='Maximum connection attempts'),
        click.option('--verbose', is_flag=True, help='Enable verbose logging'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(
    variant: str,
    timeout: Optional[float],
    user: Optional[str],
    password: Optional[str],
    cookie: Tuple[str, ...],
    cookie_file: Optional[str],
    close_header: bool,
    trust: str,
    fingerprint: Optional[str],
    ca_file: Optional[str],
    max_retries: int,
    verbose: bool,
) -> Config:
    """Create a Config from the shared connection options."""
    # Enable verbose logging if requested
    if verbose:
        logging.getLogger().setLevel(logging.INFO)
        # Also enable httpx logging
        logging.getLogger('httpx').setLevel(logging.INFO)

    return Config(
        variant=variant,
        timeout=timeout,
        username=user,
        password=password,
        cookies=list(cookie),
        cookie_file=cookie_file,
        send_connection_close=close_header,
        trust=trust,
        fingerprint=fingerprint,
        ca_file=ca_file,
        max_retries=max_retries,
    )


@click.group(invoke_without_command=True)
@click.option('--version', '-v', is_flag=True, help='Show version and exit')
@click.pass_context
def cli(ctx, version):
    """sslmjpeg - Open MJPEG camera streams over TLS.

    Connects to HTTP multipart MJPEG sources such as IP cameras, including
    devices with self-signed certificates.
    """
    if version:
        click.echo(f"sslmjpeg version {__version__}")
        ctx.exit()

    # If no subcommand, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument('url')
@click.option('--output', '-o', default='./frames', help='Output directory')
@click.option('--frames', '-n', default=10, help='Number of frames to save')
@connection_options
def grab(url: str, output: str, frames: int, **options):
    """Save frames from a stream as JPEG files.

    Example:
        sslmjpeg grab "https://camera.local/?action=stream" -n 50 -o ./frames
    """
    try:
        config = build_config(**options)
    except MjpegError as e:
        raise click.BadParameter(str(e))

    click.echo(f"Variant: {config.variant.value}")
    click.echo(f"Streaming from: {url}")
    click.echo(f"Output directory: {output}")

    async def grab_frames() -> int:
        client = MjpegClient.from_config(config)
        saved = 0
        stream = await open_with_retry(client, url, config)
        async with stream:
            with tqdm(total=frames, desc="Grabbing", unit="frame") as pbar:
                async for frame in stream:
                    save_frame(frame, Path(output))
                    saved += 1
                    pbar.update(1)
                    if saved >= frames:
                        break
        return saved

    try:
        saved = asyncio.run(grab_frames())
    except MjpegError as e:
        click.echo(f"\n✗ Failed: {e}", err=True)
        sys.exit(1)

    if saved < frames:
        click.echo(f"\nStream ended after {saved}/{frames} frames")
    else:
        click.echo(f"\n✓ Success!")
    click.echo(f"  Saved: {saved} frames")
    click.echo(f"  Location: {output}")


@cli.command()
@click.argument('url')
@connection_options
def probe(url: str, **options):
    """Open a stream and read a single frame.

    This helps verify credentials, cookies and trust settings for a camera.
    """
    try:
        config = build_config(**options)
    except MjpegError as e:
        raise click.BadParameter(str(e))

    async def read_one():
        client = MjpegClient.from_config(config)
        stream = await open_with_retry(client, url, config)
        async with stream:
            content_type = getattr(stream.source, "content_type", "")
            frame = await stream.read_frame()
        return content_type, frame

    try:
        content_type, frame = asyncio.run(read_one())
    except MjpegError as e:
        click.echo(f"✗ Failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"URL: {url}")
    click.echo(f"Content-Type: {content_type or 'unknown'}")
    if frame is None:
        click.echo("✗ Stream ended before a complete frame was read", err=True)
        sys.exit(1)
    click.echo(f"✓ Read frame {frame.index}: {len(frame)} bytes")


@cli.command()
def list_variants():
    """List available frame decoder variants."""
    click.echo("Available variants:")
    click.echo()

    variants = FrameStreamRegistry.list_available_variants()

    for variant in variants:
        stream_class = FrameStreamRegistry.get(Variant.coerce(variant))
        click.echo(f"  • {variant} ({stream_class.__name__})")

    click.echo()
    click.echo(f"Total: {len(variants)} variant(s) available")


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()
