"""
Analyze audio files for BPM and key.

Entrypoint: tempokey [--config PATH] [--json] [-v] PATH...

Directories are scanned recursively. Files that fail to decode or analyze
are reported as "not detected" and do not fail the batch.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from tempokey.config import Config, ConfigError
from tempokey.decode import AUDIO_FORMATS
from tempokey.errors import TempoKeyError
from tempokey.orchestrator import analyze_files
from tempokey.pipeline import AnalysisResult

logger = logging.getLogger(__name__)

NOT_DETECTED = "not detected"


def discover_audio_files(paths: Sequence[Union[str, Path]]) -> List[Path]:
    """
    Expand files and directories into a sorted list of audio files.

    Args:
        paths: Files and/or directories

    Returns:
        Audio file paths (directories scanned recursively)
    """
    audio_files = set()
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            for candidate in path.rglob("*"):
                if candidate.is_file() and candidate.suffix.lower() in AUDIO_FORMATS:
                    audio_files.add(candidate)
        elif path.exists():
            audio_files.add(path)
        else:
            logger.warning(f"Path not found: {path}")

    logger.info(f"Found {len(audio_files)} audio files")
    return sorted(audio_files)


def build_record(path: Path, outcome: Union[AnalysisResult, TempoKeyError]) -> Dict[str, Any]:
    """Flatten one analysis outcome into a report record."""
    if isinstance(outcome, AnalysisResult):
        return {
            "path": str(path),
            "bpm": outcome.bpm,
            "key": outcome.key,
            "camelot": outcome.camelot,
            "bpm_detected": True,
            "key_detected": outcome.key_detected,
            "error": None,
        }
    return {
        "path": str(path),
        "bpm": None,
        "key": "",
        "camelot": "",
        "bpm_detected": False,
        "key_detected": False,
        "error": f"{type(outcome).__name__}: {outcome}",
    }


def format_record(record: Dict[str, Any]) -> str:
    name = Path(record["path"]).name
    bpm = f"{record['bpm']} BPM" if record["bpm_detected"] else f"BPM {NOT_DETECTED}"
    if record["key_detected"]:
        key = f"Key: {record['key']} ({record['camelot']})"
    else:
        key = f"Key: {NOT_DETECTED}"
    return f"{name}: {bpm}, {key}"


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tempokey",
        description="Estimate BPM and musical key (Camelot notation) of audio files.",
    )
    parser.add_argument("paths", nargs="+", help="Audio files or directories")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to tempokey.toml (default: $TEMPOKEY_CONFIG_PATH or configs/tempokey.toml)",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main analysis entrypoint."""
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    )

    try:
        config = Config.load(args.config)
        logger.info(f"Config loaded: {config}")

        audio_files = discover_audio_files(args.paths)
        if not audio_files:
            logger.warning("No audio files found!")
            return 0

        def on_progress(path: str, value: int, stage: str) -> None:
            logger.debug(f"{Path(path).name}: {value}% ({stage})")

        outcomes = asyncio.run(analyze_files(audio_files, config, on_progress))
        records = [build_record(path, outcome) for path, outcome in zip(audio_files, outcomes)]

        if args.json:
            print(json.dumps(records, indent=2, ensure_ascii=False))
        else:
            for record in records:
                print(format_record(record))

        errors = sum(1 for record in records if record["error"])
        logger.info(f"Analysis complete: {len(records) - errors} analyzed, {errors} failed")
        return 0

    except KeyboardInterrupt:
        logger.warning("Analysis interrupted by user")
        return 130
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except Exception as e:
        logger.error(f"Analysis failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
