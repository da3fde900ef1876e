"""CLI for running the wakeword engine over WAV recordings."""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from wakeword_engine.audio import SpectralFrontEnd
from wakeword_engine.audio.config import EngineConfig
from wakeword_engine.errors import WakewordError
from wakeword_engine.pipeline import WakeWordDetector


def read_wav(path: Path, sample_rate: int) -> np.ndarray:
    """Read a mono WAV as float32 in [-1, 1]; raise ValueError on a bad format."""
    import scipy.io.wavfile as wavfile

    sr, audio = wavfile.read(str(path))
    if sr != sample_rate:
        raise ValueError(f"{path}: expected {sample_rate} Hz, got {sr} Hz")
    if audio.ndim != 1:
        raise ValueError(f"{path}: expected mono audio, got {audio.shape[1]} channels")
    if audio.dtype == np.int16:
        return audio.astype(np.float32) / 32768
    if audio.dtype == np.int32:
        return audio.astype(np.float32) / 2147483648
    if audio.dtype == np.uint8:
        return (audio.astype(np.float32) - 128) / 128
    return audio.astype(np.float32)


def _scan(args: argparse.Namespace, config: EngineConfig) -> int:
    audio = read_wav(args.wav, config.sample_rate)
    chunk = max(1, int(config.sample_rate * args.chunk_ms / 1000))
    hits = 0
    with WakeWordDetector(args.model, config=config) as detector:
        for start in range(0, len(audio), chunk):
            if detector.process(audio[start : start + chunk]):
                hits += 1
                print(f"detected at {start / config.sample_rate:.2f}s")
    print(f"{hits} detection(s) in {len(audio) / config.sample_rate:.2f}s of audio")
    return 0


def _features(args: argparse.Namespace, config: EngineConfig) -> int:
    audio = read_wav(args.wav, config.sample_rate)
    features = SpectralFrontEnd(config).extract(audio)
    print(f"Extracted {features.shape[0]} frames x {features.shape[1]} Mel bins")
    if features.shape[0] > 0:
        print(f"Sample frame (first 5 bins): {features[0, :5]}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Streaming wakeword detection on 16 kHz mono WAV files")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Stream a WAV file through the detector")
    scan.add_argument("model", type=Path, help="Classifier model (.onnx, or TorchScript .pt)")
    scan.add_argument("wav", type=Path, help="Input WAV file (mono 16 kHz)")
    scan.add_argument(
        "--chunk-ms",
        type=float,
        default=100.0,
        help="Samples per process() call, in milliseconds (default: 100)",
    )

    features = sub.add_parser("features", help="Print log-Mel features of a WAV file")
    features.add_argument("wav", type=Path, help="Input WAV file (mono 16 kHz)")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = EngineConfig()
    try:
        if args.command == "scan":
            return _scan(args, config)
        return _features(args, config)
    except (ValueError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except WakewordError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
