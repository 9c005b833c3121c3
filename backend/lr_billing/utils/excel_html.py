import html
from pathlib import Path
from typing import List, Union

from openpyxl import load_workbook

PAGE_CSS = """
@page { size: A4; margin: 12mm; }
body { font-family: Arial, Helvetica, sans-serif; font-size: 10pt; }
h2 { font-size: 12pt; margin: 0 0 6pt 0; }
table { border-collapse: collapse; width: 100%; }
td { border: 1px solid #999; padding: 3pt 5pt; vertical-align: top; }
td.bold { font-weight: bold; }
td.num { text-align: right; }
"""


def _cell_html(cell) -> str:
    value = cell.value
    if value is None:
        return "<td></td>"
    classes = []
    if cell.font is not None and cell.font.b:
        classes.append("bold")
    if isinstance(value, (int, float)):
        classes.append("num")
    attr = f' class="{" ".join(classes)}"' if classes else ""
    return f"<td{attr}>{html.escape(str(value))}</td>"


def workbook_to_html(path: Union[str, Path]) -> str:
    """
    Reads a rendered workbook and renders every sheet as a minimal styled HTML table.

    Rows and columns that are entirely empty are left out so the printed page
    only carries the filled part of the template.

    Args:
        path: Path of the .xlsx file.

    Returns:
        str: A complete HTML document.
    """
    try:
        wb = load_workbook(path, data_only=True)
    except Exception as e:
        raise ValueError(f"Error reading workbook {path}: {str(e)}")

    sections: List[str] = []
    for ws in wb.worksheets:
        rows = [row for row in ws.iter_rows() if any(c.value not in (None, "") for c in row)]
        if not rows:
            continue
        used_columns = sorted({
            c.column for row in rows for c in row if c.value not in (None, "")
        })
        body = []
        for row in rows:
            by_column = {c.column: c for c in row}
            cells = "".join(
                _cell_html(by_column[col]) if col in by_column else "<td></td>"
                for col in used_columns
            )
            body.append(f"<tr>{cells}</tr>")
        sections.append(f"<h2>{html.escape(ws.title)}</h2><table>{''.join(body)}</table>")

    title = html.escape(Path(path).stem)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{title}</title><style>{PAGE_CSS}</style></head>"
        f"<body>{''.join(sections)}</body></html>"
    )
