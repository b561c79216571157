#!/usr/bin/env python3
"""
LTC Decoder CLI - Decode SMPTE/LTC timecode from a file or live audio input.
"""

import logging
import sys
import time

import click

from . import SAMPLE_RATE
from .decoder import decode_file
from .timecode import FramesPerSecond, TimecodeFrame


def format_timecode(tc: TimecodeFrame) -> str:
    """Format timecode as HH:MM:SS:FF with its frame rate."""
    if tc is None:
        return "--:--:--:--"

    if tc.frames_per_second == FramesPerSecond.UNKNOWN:
        rate = "? fps"
    else:
        rate = f"{int(tc.frames_per_second)} fps"
    text = f"{tc.hours:02d}:{tc.minutes:02d}:{tc.seconds:02d}:{tc.frames:02d} ({rate})"
    if tc.user_bits is not None:
        text += " user " + "".join(f"{nibble:X}" for nibble in tc.user_bits)
    return text


@click.command()
@click.option(
    "-i", "--input",
    "input_path",
    type=click.Path(exists=True),
    help="Decode from file instead of live audio",
)
@click.option(
    "-d", "--device",
    type=int,
    help="Audio input device number (default: system default)",
)
@click.option(
    "-c", "--channel",
    type=int,
    default=0,
    help="Audio channel carrying LTC (0=left, 1=right, default: 0)",
)
@click.option(
    "-s", "--sample-rate",
    type=int,
    default=SAMPLE_RATE,
    help=f"Sample rate for live input in Hz (default: {SAMPLE_RATE})",
)
@click.option(
    "-u", "--user-bits",
    is_flag=True,
    help="Show user bits",
)
@click.option(
    "-l", "--list-devices",
    is_flag=True,
    help="List available audio input devices",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output with debug logging",
)
def main(input_path, device, channel, sample_rate, user_bits, list_devices, verbose):
    """
    Decode SMPTE/LTC timecode.

    Examples:

        ltc-decode -i test.wav         # Decode from file

        ltc-decode -i test.wav -c 1    # Use right channel of a stereo file

        ltc-decode -d 2                # Decode live from device 2

        ltc-decode --list-devices      # Show audio devices
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if list_devices:
        import sounddevice as sd
        click.echo("Audio Input Devices:")
        click.echo("-" * 60)
        for i, dev in enumerate(sd.query_devices()):
            if dev['max_input_channels'] > 0:
                click.echo(f"  [{i}] {dev['name']}")
        return

    # File decoding mode
    if input_path:
        click.echo(f"Decoding from file: {input_path}")
        click.echo("-" * 40)

        try:
            results = decode_file(input_path, channel=channel, user_bits=user_bits, debug=verbose)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(2)

        if not results:
            click.echo("No SMPTE/LTC frames detected.", err=True)
            sys.exit(1)

        click.echo(f"Detected {len(results)} frames:")
        for timestamp, tc in results[:10]:  # Show first 10
            click.echo(f"  {timestamp:7.3f}s -> {format_timecode(tc)}")

        if len(results) > 10:
            click.echo(f"  ... and {len(results) - 10} more")

        click.echo(f"\nStart timecode: {format_timecode(results[0][1])}")
        click.echo(f"End timecode:   {format_timecode(results[-1][1])}")
        return

    # Live decoding mode
    from .live import LiveDecoder

    click.echo("Decoding SMPTE/LTC from live audio input...")
    if device is not None:
        click.echo(f"Using device {device}")
    click.echo(f"Using channel {channel}")
    click.echo("Press Ctrl+C to stop.")
    click.echo("-" * 40)

    decoder = LiveDecoder(
        sample_rate=sample_rate,
        device=device,
        channel=channel,
        user_bits=user_bits,
        debug=verbose,
    )

    try:
        decoder.start()

        while True:
            time.sleep(0.1)  # Update display 10x per second

            tc = decoder.get_timecode()
            stats = decoder.get_statistics()
            if tc is not None:
                click.echo(f"\r{format_timecode(tc)}  (frames: {stats['frames_decoded']})  ", nl=False)
            else:
                click.echo("\r--:--:--:--  (waiting for signal...)  ", nl=False)

    except KeyboardInterrupt:
        click.echo("\n\nStopped.")
    except Exception as e:
        click.echo(f"\nError: {e}", err=True)
        sys.exit(1)
    finally:
        decoder.stop()


if __name__ == "__main__":
    main()
