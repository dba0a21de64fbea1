"""
Lists the fillable fields of a PDF template and writes a CSV report plus a
blank JSON skeleton next to it.

    python scripts/inspect_fillable.py assets/ccp-referral-fillable.pdf --out reports/
"""

import argparse
import logging
import sys
from pathlib import Path

from referral_pdf.template_scanner import TemplateScanner, write_field_report


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Inspect the form fields of a fillable PDF")
    parser.add_argument("pdf", type=Path, help="fillable PDF template")
    parser.add_argument("--out", type=Path, default=Path("."), help="directory for the report files")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if not args.pdf.exists():
        print(f"Not found: {args.pdf}", file=sys.stderr)
        return 1

    scan = TemplateScanner().scan_template(args.pdf)
    if scan.get("error"):
        print(f"Could not read {args.pdf}: {scan['error']}", file=sys.stderr)
        return 1

    for field in scan["fields"]:
        print(f"{field['type']:10} {field['name']}")

    paths = write_field_report(scan, args.out)
    print(f"\n{scan['field_count']} fields -> {paths['csv']}, {paths['json']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
