"""
CLI Adapter - Command-line interface.

Thin wrapper over SpeakStream.
"""

from __future__ import annotations

import argparse
import sys


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="speakstream",
        description="Incremental text-to-speech with ordered playback",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: warning)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON lines")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # speak command
    speak_parser = subparsers.add_parser(
        "speak",
        help="Speak text (or stdin, streamed line by line)",
    )
    speak_parser.add_argument("text", nargs="?", help="Text to speak (default: stdin)")
    speak_parser.add_argument("-v", "--voice", help="Voice ID (e.g., echo, nova)")
    speak_parser.add_argument("-s", "--speed", type=float, help="Speed multiplier (0.5-100)")
    speak_parser.add_argument("-b", "--backend", help="Speech backend (openai, mock)")
    speak_parser.add_argument("-d", "--device", help="Output device name")

    # devices command
    subparsers.add_parser("devices", help="List audio output devices")

    # voices command
    subparsers.add_parser("voices", help="List available voices")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    from speakstream.monitoring.logging import configure_logging
    configure_logging(parsed.log_level, json_format=parsed.json_logs)

    if parsed.command == "version":
        from speakstream import __version__
        print(f"speakstream {__version__}")
        return 0

    if parsed.command == "devices":
        return _cmd_devices()

    if parsed.command == "voices":
        return _cmd_voices()

    if parsed.command == "speak":
        return _cmd_speak(parsed)

    return 1


def _cmd_speak(args: argparse.Namespace) -> int:
    """Handle speak command."""
    from speakstream import SpeakStream, SpeakStreamConfig, SpeakStreamError

    overrides = {}
    if args.voice:
        overrides["voice"] = args.voice
    if args.speed is not None:
        overrides["speed"] = args.speed
    if args.backend:
        overrides["backend"] = args.backend
    if args.device:
        overrides["output_device"] = args.device

    try:
        config = SpeakStreamConfig.from_env(**overrides)
        with SpeakStream(config) as speaker:
            try:
                if args.text is not None:
                    speaker.add_token(args.text)
                else:
                    for line in sys.stdin:
                        speaker.add_token(line)
                speaker.complete_sentence()
                speaker.wait_until_idle()
            except KeyboardInterrupt:
                speaker.stop_speech()
                return 130
        return 0

    except (SpeakStreamError, ValueError, ImportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _cmd_devices() -> int:
    """List audio output devices."""
    from speakstream.playback.device import default_output_device_name, list_output_devices

    devices = list_output_devices()
    if not devices:
        print("No output devices found.")
        return 1

    default = default_output_device_name()
    print("Output devices:")
    print()
    for name in devices:
        marker = "*" if name == default else " "
        print(f"  {marker} {name}")
    print()
    print("* system default")

    return 0


def _cmd_voices() -> int:
    """List available voices."""
    from speakstream.backends.openai import OPENAI_VOICES

    print("Available voices (openai):")
    print()
    for voice_id, description in OPENAI_VOICES.items():
        print(f"  {voice_id:15} - {description}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
