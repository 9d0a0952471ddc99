"""
ReportFlow Main Entry Point

Collects files per category from the command line, runs one assembly and
writes the resulting PDF:
1. Configure logging and the rasterizer runtime (once per process)
2. Check each file against its category's accepted file types
3. Assemble screenshots first, then report pages
4. Save (and optionally open) the document
"""

import argparse
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .docuflow.rasterizer import configure_rasterizer
from .logging_config import LOG_LEVELS, setup_logging
from .models import InputFile, SourceCategory, load_profiles
from .services.session import AssemblySession

logger = logging.getLogger(__name__)

CATEGORY_OPTIONS = {
    SourceCategory.DIAGNOCAT_SEGMENTATION: "--segmentation",
    SourceCategory.MEDITLINK_SCANS: "--scans",
    SourceCategory.DIAGNOCAT_RADIOLOGICAL: "--radiological",
    SourceCategory.CEPHALOMETRIC_ANALYSIS: "--cephalometric",
}


def build_parser() -> argparse.ArgumentParser:
    profiles = load_profiles()
    parser = argparse.ArgumentParser(
        prog="reportflow",
        description="Assemble clinic screenshots and reports into one branded PDF.",
        epilog=(
            "Screenshots (segmentation, then scans) always come first, followed by "
            "the pages of every report (radiological, then cephalometric)."
        ),
    )
    for category, option in CATEGORY_OPTIONS.items():
        parser.add_argument(
            option,
            dest=category.value,
            nargs="+",
            default=[],
            metavar="FILE",
            help=profiles[category].title,
        )
    parser.add_argument(
        "--output", "-o",
        help="Output file or directory (default: suggested filename in the current directory)",
    )
    parser.add_argument("--open", action="store_true", help="Open the result in a viewer")
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Console log level (default from settings)",
    )
    parser.add_argument("--poppler-path", default=None, help="Directory with poppler binaries")
    return parser


def collect_inputs(args: argparse.Namespace) -> Dict[SourceCategory, List[InputFile]]:
    """
    Read every file named on the command line.
    
    Raises:
        ValueError: If a file has a type its category does not accept
        FileNotFoundError: If a file does not exist
    """
    profiles = load_profiles()
    inputs: Dict[SourceCategory, List[InputFile]] = {}
    
    for category in SourceCategory:
        profile = profiles[category]
        files = []
        for name in getattr(args, category.value):
            if not profile.accepts(name):
                raise ValueError(
                    f"{Path(name).name} is not accepted for '{profile.title}' "
                    f"(accepted: {', '.join(profile.accepted_suffixes)})"
                )
            files.append(InputFile.from_path(name))
        inputs[category] = files
    
    return inputs


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the ReportFlow CLI.
    
    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    
    setup_logging(log_level=args.log_level)
    configure_rasterizer(poppler_path=args.poppler_path)
    
    try:
        inputs = collect_inputs(args)
    except (ValueError, OSError) as e:
        logger.error(str(e))
        return 1
    
    session = AssemblySession()
    handle = session.process(inputs)
    if handle is None:
        print(f"Error: {session.error}", file=sys.stderr)
        return 1
    
    destination = Path(args.output) if args.output else Path.cwd()
    try:
        saved = handle.save(destination)
    except OSError as e:
        print(f"Error: Could not save the document to {destination}: {e.strerror or e}", file=sys.stderr)
        return 1
    finally:
        session.reset()
    
    print(f"Document ready: {saved}")
    if args.open:
        webbrowser.open(saved.resolve().as_uri())
    return 0


def run() -> None:
    """Console-script wrapper."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user")
        sys.exit(130)


if __name__ == "__main__":
    run()
