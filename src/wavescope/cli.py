"""
CLI entry point for the wavescope renderer.

Usage:
    wavescope <audio_file> [options]            render to MP4
    wavescope <audio_file> --preview [options]  live window
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import pygame

from wavescope.config import ALL_PASSES, PRESETS, RenderParameters, get_preset, load_config
from wavescope.core.source import AudioFileSource
from wavescope.io.encoder import encode_video, ffmpeg_available
from wavescope.visualizers.renderer import FrameRenderer

DEFAULT_EFFECTS = "gradient,bars,circles"


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wavescope",
        description="Audio-reactive frequency visualizer",
    )

    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, mp3, flac)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output MP4 path (default: <audio>_wavescope.mp4)",
    )

    # Resolution
    parser.add_argument("--width", type=int, default=800, help="Frame width (default: 800)")
    parser.add_argument("--height", type=int, default=600, help="Frame height (default: 600)")
    parser.add_argument("-f", "--fps", type=int, default=60, help="Frames per second (default: 60)")

    # Effects
    parser.add_argument(
        "-p", "--preset", type=str, default="classic",
        choices=sorted(PRESETS),
        help="Renderer variant (default: classic)",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="JSON file of EffectConfig overrides (applied over the preset)",
    )
    parser.add_argument(
        "-e", "--effects", type=str, default=DEFAULT_EFFECTS,
        help=f"Comma-separated effects to enable (default: {DEFAULT_EFFECTS}). "
             f"Available: {', '.join(ALL_PASSES)}, bounce",
    )
    parser.add_argument(
        "--waveform-height", type=float, default=None,
        help="Height used by the waveform and pixel echo effects (default: frame height)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the noise effect")

    # Output
    parser.add_argument(
        "-q", "--quality", type=str, default="medium",
        choices=["high", "medium", "fast"],
        help="Encoding quality (default: medium)",
    )
    parser.add_argument(
        "--max-duration", type=float, default=None,
        help="Limit output to N seconds",
    )
    parser.add_argument("--preview", action="store_true", help="Show a live window instead of encoding")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run_preview(
    renderer: FrameRenderer,
    screen: pygame.Surface,
    source: AudioFileSource,
    params: RenderParameters,
    fps: int,
):
    """One render_frame per display tick until the window closes or the audio ends."""
    clock = pygame.time.Clock()
    source.start()
    running = True
    while running and not source.finished:
        for event in pygame.event.get():
            if event.type == pygame.QUIT or (event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE):
                running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_SPACE:
                if source.started:
                    source.stop()
                else:
                    source.start()

        if source.started:
            source.advance(1.0 / fps)
        params.playback_position = source.position
        params.playback_duration = source.duration

        renderer.render_frame(params)
        screen.fill((0, 0, 0))
        screen.blit(renderer.surface, (0, 0))
        pygame.display.flip()
        clock.tick(fps)
    source.stop()


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.config is not None:
            config = load_config(args.config, preset=args.preset)
        else:
            config = get_preset(args.preset)
        if args.seed is not None:
            config.seed = args.seed
        params = RenderParameters.from_effects(
            args.effects,
            waveform_height=args.waveform_height if args.waveform_height is not None else float(args.height),
        )
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Loading audio: {args.audio}")
    t0 = time.time()
    source = AudioFileSource(args.audio)
    print(f"  Duration: {source.duration:.1f}s at {source.sample_rate} Hz")
    print(f"  Loading took {time.time() - t0:.1f}s")

    renderer = FrameRenderer(config)

    if args.preview:
        pygame.init()
        try:
            pygame.display.set_caption(f"wavescope - {args.audio.name}")
            screen = pygame.display.set_mode((args.width, args.height))
            canvas = pygame.Surface((args.width, args.height), pygame.SRCALPHA)
            renderer.initialize(canvas, source)
            run_preview(renderer, screen, source, params, args.fps)
        finally:
            pygame.quit()
        return

    if not ffmpeg_available():
        print("Error: ffmpeg not found on PATH", file=sys.stderr)
        sys.exit(1)

    output = args.output
    if output is None:
        output = args.audio.with_name(f"{args.audio.stem}_wavescope.mp4")

    canvas = pygame.Surface((args.width, args.height), pygame.SRCALPHA)
    renderer.initialize(canvas, source)

    max_frames = None
    if args.max_duration is not None:
        max_frames = int(args.max_duration * args.fps)

    total = int(source.duration * args.fps)
    if max_frames is not None:
        total = min(total, max_frames)
    print(f"\nRendering {total} frames at {args.width}x{args.height} @ {args.fps}fps")
    print(f"  Preset: {args.preset}, Effects: {args.effects}")

    t1 = time.time()
    frames = renderer.render_audio(params, fps=args.fps, max_frames=max_frames, progress_callback=_progress_bar)
    try:
        encode_video(
            frames,
            output_path=output,
            width=args.width,
            height=args.height,
            fps=args.fps,
            audio_path=args.audio,
            quality=args.quality,
        )
    except RuntimeError as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)

    elapsed = time.time() - t1
    file_size_mb = output.stat().st_size / 1024 / 1024

    print(f"\nDone! {file_size_mb:.1f} MB")
    print(f"  Render+encode took {elapsed:.1f}s ({total / max(elapsed, 0.01):.1f} fps)")
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
