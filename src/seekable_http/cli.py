"""CLI implementation for seekable_http: read a byte range of a file over HTTP."""

import json
from pathlib import Path
from typing import BinaryIO, Optional

import httpx
import typer

from .channel import DEFAULT_SKIP_THRESHOLD, SeekableHttpChannel
from .errors import ChannelError
from .log_utils import log, set_up_logging

app = typer.Typer(add_completion=False, help="Read byte ranges of files over HTTP.")

CHUNK_SIZE = 64 * 1024


def make_client(timeout: float) -> httpx.Client:
    """Create the HTTPX client used for all of a command's requests."""
    return httpx.Client(follow_redirects=True, timeout=timeout)


def copy_range(channel: SeekableHttpChannel, sink: BinaryIO, length: Optional[int]) -> int:
    """Copy ``length`` bytes (or up to the end of the file) from the channel's position."""
    remaining = channel.size - channel.tell() if length is None else length
    written = 0
    while remaining > 0:
        chunk = channel.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            break
        sink.write(chunk)
        written += len(chunk)
        remaining -= len(chunk)
    return written


def channel_info(channel: SeekableHttpChannel) -> dict:
    return {
        "url": channel.url,
        "size": channel.size,
        "validator": channel.validator,
        "requests": channel.request_count,
    }


@app.command()
def main(
    url: str = typer.Argument(..., help="URL of the file (http or https)"),
    offset: int = typer.Option(0, "--offset", min=0, help="Seek to byte OFFSET first"),
    length: Optional[int] = typer.Option(
        None, "--length", min=0, help="Read LENGTH bytes (default: to end of file)"
    ),
    skip_threshold: int = typer.Option(
        DEFAULT_SKIP_THRESHOLD,
        "--skip-threshold",
        min=0,
        help="Largest forward seek served by discarding bytes",
    ),
    timeout: float = typer.Option(30.0, "--timeout", min=0, help="HTTP timeout (seconds)"),
    head: bool = typer.Option(False, "--head", help="Emit the probed head bytes instead"),
    info: bool = typer.Option(False, "--info", help="Emit size and validator as JSON"),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write to PATH instead of stdout"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log requests to stderr"),
):
    """Read bytes from a file served over HTTP, without downloading all of it."""
    set_up_logging(quiet=not verbose)
    sink = open(output, "wb") if output else typer.get_binary_stream("stdout")
    try:
        with make_client(timeout=timeout) as client, SeekableHttpChannel(
            url, client=client, skip_threshold=skip_threshold
        ) as channel:
            if info:
                sink.write(json.dumps(channel_info(channel)).encode() + b"\n")
            elif head:
                sink.write(channel.head_bytes)
            else:
                if offset:
                    channel.seek(offset)
                written = copy_range(channel, sink, length=length)
                log.debug(f"Wrote {written} bytes using {channel.request_count} requests")
    except (ChannelError, httpx.HTTPError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        if output:
            sink.close()
        else:
            sink.flush()


if __name__ == "__main__":
    app()
