"""
FFmpeg encoder for offline renders.

Raw RGB frames are written to ffmpeg's stdin and, when an audio file is
given, muxed with it into an MP4.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable

import numpy as np

logger = logging.getLogger(__name__)

# (preset, crf, pix_fmt)
QUALITY_PRESETS = {
    "high": ("slow", "18", "yuv444p"),
    "medium": ("medium", "23", "yuv420p"),
    "fast": ("ultrafast", "28", "yuv420p"),
}


def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


def build_command(
    output_path: Path,
    width: int,
    height: int,
    fps: int,
    audio_path: Path | None = None,
    quality: str = "medium",
) -> list[str]:
    """ffmpeg argument list for a raw rgb24 pipe, with optional audio."""
    if quality not in QUALITY_PRESETS:
        raise ValueError(f"Unknown quality {quality!r} (choose from {', '.join(QUALITY_PRESETS)})")
    preset, crf, pix_fmt = QUALITY_PRESETS[quality]

    cmd = [
        "ffmpeg", "-y",
        "-loglevel", "error",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "pipe:0",
    ]
    if audio_path is not None:
        cmd += ["-i", str(audio_path)]
    cmd += [
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", crf,
        "-pix_fmt", pix_fmt,
    ]
    if audio_path is not None:
        cmd += ["-c:a", "aac", "-b:a", "192k", "-shortest"]
    cmd.append(str(output_path))
    return cmd


def encode_video(
    frames: Iterable[np.ndarray],
    output_path: Path,
    width: int,
    height: int,
    fps: int = 60,
    audio_path: Path | None = None,
    quality: str = "medium",
    progress_callback: Callable[[int], None] | None = None,
) -> Path:
    """
    Encode frames to MP4.

    Args:
        frames: Yields (H, W, 3) uint8 arrays.
        output_path: Output MP4 path.
        width: Frame width.
        height: Frame height.
        fps: Frames per second.
        audio_path: Audio file to mux in, or None for a silent video.
        quality: "high", "medium", or "fast".
        progress_callback: Optional callback(frames_written).

    Returns:
        Path to the output file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_command(output_path, width, height, fps, audio_path, quality)
    logger.debug("running %s", " ".join(cmd))

    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )

    written = 0
    try:
        for frame in frames:
            if frame.shape != (height, width, 3):
                raise ValueError(f"Frame shape {frame.shape} does not match {(height, width, 3)}")
            proc.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            written += 1
            if progress_callback:
                progress_callback(written)
    except BrokenPipeError:
        # ffmpeg died early; its stderr explains why
        pass
    finally:
        if proc.stdin:
            proc.stdin.close()

    stderr = proc.stderr.read().decode("utf-8", errors="replace")
    proc.wait()

    if proc.returncode != 0:
        error_lines = [
            line for line in stderr.split("\n")
            if "error" in line.lower() or "invalid" in line.lower()
        ]
        error_msg = "\n".join(error_lines[-5:]) if error_lines else stderr[-500:]
        raise RuntimeError(f"ffmpeg exited with code {proc.returncode}: {error_msg}")

    return output_path
