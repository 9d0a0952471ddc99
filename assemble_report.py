#!/usr/bin/env python3
"""
ReportFlow CLI Entry Point

Usage:
    python assemble_report.py --segmentation shot1.png shot2.png
    python assemble_report.py --scans scan.jpg --radiological report.pdf
    python assemble_report.py --cephalometric ceph.pdf -o out.pdf --open
    python assemble_report.py --help

Order in the output:
    All screenshots (segmentation, then scans) come first, then the pages
    of every report (radiological, then cephalometric), regardless of the
    order the options are given in.
"""

import sys
from pathlib import Path

# Allow running from a source checkout without installing
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from reportflow.main import run

if __name__ == "__main__":
    run()
