"""
PDF Template Scanner

Lists the fillable fields of a template (name, type, alternate label) so the
field mapping can be checked against a new template revision.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pypdf import PdfReader

logger = logging.getLogger(__name__)

# /Ff bits for /Btn fields
_FF_RADIO = 1 << 15
_FF_PUSHBUTTON = 1 << 16
# /Ff bit for /Ch fields
_FF_MULTISELECT = 1 << 21


def _field_type(field: Dict) -> str:
    ft = field.get("/FT")
    flags = int(field.get("/Ff", 0) or 0)
    if ft == "/Tx":
        return "text"
    if ft == "/Btn":
        if flags & _FF_PUSHBUTTON:
            return "button"
        if flags & _FF_RADIO:
            return "radio"
        return "checkbox"
    if ft == "/Ch":
        return "listbox" if flags & _FF_MULTISELECT else "dropdown"
    if ft == "/Sig":
        return "signature"
    return "unknown"


class TemplateScanner:
    """Scans PDF templates for form fields"""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = Path(templates_dir) if templates_dir else None

    def scan_template(self, pdf_file: Path) -> Dict:
        """
        Scan a single PDF template.

        Returns: {
            "template_file": "filename.pdf",
            "fields": [{"name": ..., "type": ..., "label": ...}, ...],
            "has_fields": bool,
            "field_count": int,
        }
        """
        pdf_file = Path(pdf_file)
        try:
            reader = PdfReader(str(pdf_file), strict=False)
            raw_fields = reader.get_fields() or {}
        except Exception as e:
            logger.error("Error scanning template %s: %s", pdf_file.name, e)
            return {
                "template_file": pdf_file.name,
                "fields": [],
                "has_fields": False,
                "field_count": 0,
                "error": str(e),
            }

        fields = []
        for name, field in raw_fields.items():
            label = field.get("/TU")
            fields.append({
                "name": name,
                "type": _field_type(field),
                "label": str(label) if label else "",
            })

        logger.info("Scanned %s: %d fields", pdf_file.name, len(fields))
        return {
            "template_file": pdf_file.name,
            "fields": fields,
            "has_fields": bool(fields),
            "field_count": len(fields),
        }

    def scan_all_templates(self) -> Dict[str, Dict]:
        results: Dict[str, Dict] = {}
        if not self.templates_dir or not self.templates_dir.exists():
            logger.warning("Templates directory not found: %s", self.templates_dir)
            return results
        for pdf_file in sorted(self.templates_dir.glob("*.pdf")):
            results[pdf_file.stem] = self.scan_template(pdf_file)
        return results


def field_skeleton(scan: Dict) -> Dict[str, object]:
    """Blank value per field: "" for text/choices, False for checkboxes, [] for multi-select."""
    skeleton: Dict[str, object] = {}
    for field in scan.get("fields", []):
        kind = field["type"]
        if kind == "checkbox":
            skeleton[field["name"]] = False
        elif kind == "listbox":
            skeleton[field["name"]] = []
        else:
            skeleton[field["name"]] = ""
    return skeleton


def missing_fields(scan: Dict, names: Iterable[str]) -> List[str]:
    """Mapped target names the scanned template does not define."""
    present = {field["name"] for field in scan.get("fields", [])}
    return sorted({name for name in names if name not in present})


def write_field_report(scan: Dict, out_dir: Path) -> Dict[str, Path]:
    """Write `fillable-fields.csv` and `fillable-skeleton.json` into `out_dir`."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    csv_path = out_dir / "fillable-fields.csv"
    with csv_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "type"])
        for field in scan.get("fields", []):
            writer.writerow([field["name"], field["type"]])

    json_path = out_dir / "fillable-skeleton.json"
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(field_skeleton(scan), f, indent=2)

    return {"csv": csv_path, "json": json_path}
