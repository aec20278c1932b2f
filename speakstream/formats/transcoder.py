"""
Speed transcoder - applies a tempo change to a synthesized segment.

Runs the external ``ffmpeg`` binary with the ``atempo`` filter:

    ffmpeg -y -i IN -codec:a libmp3lame -b:a 160k -filter:a atempo=SPEED -vn OUT

The mp3 codec flags are only passed when the output is an mp3 file.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from speakstream.errors import TranscodeError

logger = logging.getLogger(__name__)

MP3_BITRATE = "160k"


def find_ffmpeg(ffmpeg: str | None = None) -> str:
    """Locate the ffmpeg binary.

    Args:
        ffmpeg: Explicit binary name or path. None looks up "ffmpeg" on PATH.

    Raises:
        TranscodeError: If the binary cannot be found.
    """
    name = ffmpeg or "ffmpeg"
    resolved = shutil.which(name)
    if resolved is None:
        raise TranscodeError(
            f"ffmpeg not found: {name!r}. Install ffmpeg or set SPEAKSTREAM_FFMPEG.",
            details={"ffmpeg": name},
        )
    return resolved


def build_command(
    ffmpeg: str,
    input_path: Path,
    output_path: Path,
    speed: float,
) -> list[str]:
    """Build the ffmpeg argument list for a tempo change."""
    command = [ffmpeg, "-y", "-i", str(input_path)]
    if output_path.suffix.lower() == ".mp3":
        command += ["-codec:a", "libmp3lame", "-b:a", MP3_BITRATE]
    command += ["-filter:a", f"atempo={speed}", "-vn", str(output_path)]
    return command


def adjust_speed(
    input_path: str | Path,
    output_path: str | Path,
    speed: float,
    ffmpeg: str | None = None,
    timeout: float | None = None,
) -> Path:
    """Write a copy of input_path played back at speed into output_path.

    Blocking. The dispatcher runs it in a worker thread.

    Args:
        input_path: Source audio file.
        output_path: Destination file; its suffix selects the container.
        speed: Tempo multiplier (1.0 = unchanged).
        ffmpeg: ffmpeg binary name or path.
        timeout: Seconds before ffmpeg is killed. None waits indefinitely.

    Returns:
        The output path.

    Raises:
        TranscodeError: If ffmpeg is missing, times out or exits with an error.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    command = build_command(find_ffmpeg(ffmpeg), input_path, output_path, speed)

    logger.debug("Transcoding %s at speed %s", input_path.name, speed)

    try:
        completed = subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise TranscodeError(
            f"ffmpeg timed out after {timeout}s",
            details={"input": str(input_path), "speed": speed},
        ) from e
    except OSError as e:
        raise TranscodeError(f"Failed to run ffmpeg: {e}") from e

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise TranscodeError(
            f"ffmpeg exited with status {completed.returncode}",
            returncode=completed.returncode,
            stderr=stderr,
            details={"input": str(input_path), "speed": speed},
        )

    return output_path
