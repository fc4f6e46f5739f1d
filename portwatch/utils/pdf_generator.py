"""
PortWatch PDF Report Generator
Printable change report with color-coded event types, built with fpdf2.
"""
from datetime import datetime
from typing import Optional

from fpdf import FPDF

from portwatch.core.schemas import DiffFile, SnapshotMetadata
from portwatch.utils.report_generator import FOOTER_NOTE, human_timestamp, summary_rows

EVENT_COLORS = {
    "Opened": (39, 174, 96),
    "Closed": (192, 57, 43),
    "Changed": (41, 128, 185),
}


# Core PDF fonts only cover latin-1.
def _latin1(value: str) -> str:
    return str(value).encode("latin-1", "replace").decode("latin-1")


class PDFReport(FPDF):
    """PDF template with standardized header and footer."""

    def header(self) -> None:
        self.set_font('Helvetica', 'B', 15)
        self.cell(80)
        self.cell(30, 10, 'PortWatch - Change Report', align='C')
        self.ln(20)
        self.set_line_width(0.5)
        self.line(10, 25, 200, 25)

    def footer(self) -> None:
        self.set_y(-15)
        self.set_font('Helvetica', 'I', 8)
        self.cell(0, 10, f'Page {self.page_no()}', align='C')


def generate_pdf(diff_file: DiffFile, previous: Optional[SnapshotMetadata] = None) -> bytes:
    """
    Render the diff summary table as a PDF document.

    Args:
        diff_file: Diff payload (metadata + diff)
        previous: Metadata of the snapshot the diff was computed against, if known

    Returns:
        bytes: the PDF document
    """
    meta = diff_file.metadata
    pdf = PDFReport()
    pdf.add_page()

    pdf.set_font("Helvetica", 'B', 12)
    header_lines = [
        f"Machine: {meta.machine_id}",
        f"Operating system: {meta.os}",
        f"Analysis date: {human_timestamp(meta.timestamp)}",
    ]
    if previous is not None:
        header_lines.append(f"Compared with: {human_timestamp(previous.timestamp)}")
    header_lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    for line in header_lines:
        pdf.cell(190, 8, _latin1(line), new_x="LMARGIN", new_y="NEXT")

    diff = diff_file.diff
    pdf.cell(
        190, 8,
        f"Opened: {len(diff.added)}   Closed: {len(diff.removed)}   Changed: {len(diff.changed)}",
        new_x="LMARGIN", new_y="NEXT",
    )
    pdf.ln(6)

    pdf.set_fill_color(52, 152, 219)
    pdf.set_text_color(255, 255, 255)
    pdf.cell(30, 10, "Type", border=1, align='C', fill=True)
    pdf.cell(25, 10, "Port", border=1, align='C', fill=True)
    pdf.cell(65, 10, "Scope", border=1, align='C', fill=True)
    pdf.cell(70, 10, "Program", border=1, align='C', fill=True, new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", size=9)
    rows = summary_rows(diff_file)
    if not rows:
        pdf.set_text_color(0, 0, 0)
        pdf.cell(190, 10, "No changes", border=1, align='C', new_x="LMARGIN", new_y="NEXT")

    for kind, port, scope, program in rows:
        pdf.set_text_color(*EVENT_COLORS.get(kind, (0, 0, 0)))
        pdf.cell(30, 10, kind, border=1)
        pdf.set_text_color(0, 0, 0)
        pdf.cell(25, 10, port, border=1, align='C')
        pdf.cell(65, 10, _latin1(scope)[:40], border=1)
        pdf.cell(70, 10, _latin1(program)[:45], border=1, new_x="LMARGIN", new_y="NEXT")

    pdf.ln(6)
    pdf.set_font("Helvetica", 'I', 8)
    pdf.set_text_color(100, 100, 100)
    pdf.multi_cell(190, 5, FOOTER_NOTE)

    return bytes(pdf.output())
