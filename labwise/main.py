import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from labwise.config.settings import Settings
from labwise.logging.logger import Log
from labwise.processor.exceptions import PipelineError
from labwise.processor.processor import Processor, build_processor


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="labwise-analyze",
        description="Analyze lab report files (text, PDF or image) with an AI model.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="Lab report files to analyze")
    parser.add_argument(
        "--media-type",
        help="Declared media type for every file (guessed from the file name by default)",
    )
    parser.add_argument(
        "--caller-id",
        help="Identity checked against the rate limit when it is enabled",
    )
    return parser.parse_args(argv)


async def analyze_file(
    processor: Processor,
    path: Path,
    media_type: str | None = None,
    caller_id: str | None = None,
) -> dict[str, object]:
    """Analyze one file and return a JSON-ready report of the outcome."""
    declared = media_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    try:
        result = await processor.analyze(
            path.read_bytes(), declared, path.name, caller_id=caller_id
        )
    except PipelineError as exc:
        return {"file": str(path), "error": str(exc), "stage": exc.stage}
    except OSError as exc:
        return {"file": str(path), "error": f"Cannot read file: {exc}", "stage": None}
    return {"file": str(path), "analysis": result.to_dict()}


async def analyze_files(
    processor: Processor,
    paths: list[Path],
    media_type: str | None = None,
    caller_id: str | None = None,
) -> list[dict[str, object]]:
    """Analyze files concurrently; reports come back in input order."""
    return list(
        await asyncio.gather(
            *(analyze_file(processor, path, media_type, caller_id) for path in paths)
        )
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point: load settings -> build processor -> analyze files -> print JSON."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    processor = build_processor(settings)
    reports = asyncio.run(analyze_files(processor, args.files, args.media_type, args.caller_id))
    for report in reports:
        print(json.dumps(report, indent=2))
    return 1 if any("error" in report for report in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
